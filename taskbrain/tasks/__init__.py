"""Task records: models, validation, storage, cache and the repository.

The repository is the single writer of task records and the owner of the
append-only event log.
"""
