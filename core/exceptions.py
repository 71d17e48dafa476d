# core/exceptions.py


class DigestError(Exception):
    """Base class for every failure raised by the digest pipeline."""


class CheckpointError(DigestError):
    """The checkpoint could not be read from or written to its backend."""


class MessageSourceError(DigestError):
    """The chat history could not be fetched."""


class DocumentStoreError(DigestError):
    """A document could not be read or replaced."""

    def __init__(self, document_id: str, message: str):
        super().__init__(f"{document_id}: {message}")
        self.document_id = document_id


class MergeError(DigestError):
    """The merge call failed or returned nothing usable."""


class MergeParseError(MergeError):
    """The merge response did not contain both labelled sections."""
