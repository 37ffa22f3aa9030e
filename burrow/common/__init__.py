"""Shared configuration, cipher and channel modules."""
