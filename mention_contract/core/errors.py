SCHEMA_ERROR_MESSAGE = "Data does not follow the required JSON schema"
EMPTY_CID_MESSAGE = "cid cannot be empty"
EMPTY_OWNER_MESSAGE = "owner cannot be empty"
NOT_OWNER_MESSAGE = "Not owner of the post"
UNDECODABLE_CONTENT_MESSAGE = "Unable to deserialize ipfs content"
SERIALIZATION_ERROR_MESSAGE = "Unable to serialize content"
MINT_UNAVAILABLE_MESSAGE = "on_mint is not available"


class TransitionError(Exception):
    """Base error for a rejected mention transition."""


class SchemaError(TransitionError):
    """Raised when the transaction payload is not a valid mention proposal."""


class ValidationError(TransitionError):
    """Raised when a required proposal field is empty."""


class StoreUnavailable(TransitionError):
    """Raised when the content store call cannot be completed."""


class MalformedBlock(TransitionError):
    """Raised when a stored block or its content cannot be decoded."""


class AuthorityUnavailable(TransitionError):
    """Raised when the ownership registry cannot be queried."""


class AuthorityMalformedResponse(TransitionError):
    """Raised when the ownership registry response is not a search_metadatas envelope."""


class NotOwner(TransitionError):
    """Raised when the requester may not overwrite an existing mention."""


class SerializationError(TransitionError):
    """Raised when the merged content cannot be encoded."""
