"""Custom exceptions for the EduRAG engine.

Defines the hierarchy of exceptions raised by the core pipeline.

Transient transport failures (NetworkError, RequestTimeout, RateLimited) are
retried by the request client before they surface. Business errors
(ConfigError, AuthenticationError, MalformedResponseError) propagate to the
chat turn's caller. ValidationParseError never leaves the validator or the
learning-progress evaluator.
"""

from typing import Optional


class EduRAGException(Exception):
    """Base exception for the engine.

    All engine-specific exceptions inherit from this.
    """

    user_message = "Something went wrong while answering. Please try again."

    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR"):
        """Initialize engine exception.

        Args:
            message: Error message
            error_code: Error code for programmatic handling
        """
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.error_code}, msg={self.message})"


class ConfigError(EduRAGException):
    """Raised when model configuration is missing or invalid.

    Causes:
        - Empty API key
        - Missing base URL or model id
    """

    user_message = "The chatbot is not configured yet. Please contact the administrator."

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        super().__init__(message, "CONFIG_ERROR")


class NetworkError(EduRAGException):
    """Raised when the upstream host cannot be reached.

    Causes:
        - DNS failure
        - Connection refused or reset
    """

    user_message = "The language model service is unreachable right now. Please try again later."

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message, "NETWORK_ERROR")


class RequestTimeout(EduRAGException):
    """Raised when an outbound call exceeds the hard timeout."""

    user_message = "The language model took too long to answer. Please try again."

    def __init__(self, message: str, timeout: Optional[float] = None):
        self.timeout = timeout
        super().__init__(message, "TIMEOUT")


class RateLimited(EduRAGException):
    """Raised when the provider keeps answering 429 after all retries."""

    user_message = "Too many requests right now. Please wait a moment and try again."

    def __init__(self, message: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message, "RATE_LIMITED")


class UpstreamError(EduRAGException):
    """Raised for a non-2xx response that is not otherwise classified.

    Attributes:
        status: HTTP status code
        body: Response body text (truncated)
    """

    def __init__(self, status: int, body: str = "", error_code: str = "UPSTREAM_ERROR"):
        self.status = status
        self.body = body
        super().__init__(f"API error ({status}): {body[:500]}", error_code)


class AuthenticationError(UpstreamError):
    """Raised on 401/403: the API key was rejected."""

    user_message = "The chatbot's API key was rejected. Please contact the administrator."

    def __init__(self, status: int, body: str = ""):
        super().__init__(status, body, "AUTHENTICATION_ERROR")


class MalformedResponseError(EduRAGException):
    """Raised when an upstream response does not match the expected schema."""

    user_message = "The language model returned an unexpected answer. Please try again."

    def __init__(self, message: str):
        super().__init__(message, "MALFORMED_RESPONSE")


class EmbeddingError(EduRAGException):
    """Raised when an embedding cannot be produced.

    Causes:
        - Response body that is not JSON
        - Response without data[0].embedding
        - Vector dimension mismatch
    """

    def __init__(self, message: str, text_length: Optional[int] = None):
        self.text_length = text_length
        super().__init__(message, "EMBEDDING_ERROR")


class ValidationParseError(EduRAGException):
    """Raised internally when a validator/evaluator answer cannot be parsed.

    Always caught by the component that raised it.
    """

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message, "VALIDATION_PARSE_ERROR")


class ChunkingError(EduRAGException):
    """Raised when chunking parameters are invalid."""

    def __init__(self, message: str):
        super().__init__(message, "CHUNKING_ERROR")


class VectorStoreError(EduRAGException):
    """Raised when document/vector store operations fail.

    Causes:
        - Database unavailable
        - Dimension mismatch
    """

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message, "VECTOR_STORE_ERROR")


class DocumentNotFoundError(EduRAGException):
    """Raised when a document id is not registered in the store."""

    def __init__(self, message: str, doc_id: Optional[str] = None):
        self.doc_id = doc_id
        super().__init__(message, "DOCUMENT_NOT_FOUND")


class FileProcessingError(EduRAGException):
    """Raised when text cannot be extracted from an uploaded file.

    Causes:
        - Unsupported file type
        - Corrupted or password-protected file
        - No extractable text
    """

    user_message = "The file could not be read. It may be corrupted or password protected."

    def __init__(self, message: str, file_path: Optional[str] = None):
        self.file_path = file_path
        super().__init__(message, "FILE_PROCESSING_ERROR")
