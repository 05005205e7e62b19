"""
Error taxonomy for Mizan Memory Engine
Copyright 2025 Jurden Bruce

Every error carries a stable ``kind`` so callers (CLI, HTTP API) branch on
the kind rather than on message text.
"""


class MemoryEngineError(Exception):
    """Base class for all engine errors"""
    kind = "engine_error"

    def __init__(self, message: str = "", kind: str = None):
        super().__init__(message)
        if kind:
            self.kind = kind

    def to_dict(self):
        return {"error": str(self), "kind": self.kind}


class ValidationError(MemoryEngineError):
    """Bad caller input: empty content, bad category, blank query or id"""
    kind = "validation"


class ConfigurationError(MemoryEngineError):
    kind = "configuration"


class EmbeddingUnavailableError(MemoryEngineError):
    """The embedding capability cannot run (no credential, library missing)"""
    kind = "embedding_unavailable"


class EmbeddingFailedError(MemoryEngineError):
    """The embedding call ran but returned no usable vector"""
    kind = "embedding_failed"


class StorageError(MemoryEngineError):
    kind = "storage_failure"


class DuplicateIdError(StorageError):
    kind = "duplicate_id"


class DurabilityLogError(MemoryEngineError):
    kind = "durability_log_failure"
