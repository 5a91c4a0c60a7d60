"""
Client Exceptions
Error taxonomy raised by the blockchain facades
"""


class BlockchainClientError(Exception):
    """Base class for every error raised by this SDK"""


class ConfigurationError(BlockchainClientError):
    """Raised when the client is constructed with missing or invalid settings"""


class NotFoundError(BlockchainClientError):
    """Raised when a transaction, receipt, block or event does not exist"""


class AuthorizationError(BlockchainClientError):
    """Raised when the signing address lacks the role a contract call requires"""


class ValidationError(BlockchainClientError, ValueError):
    """Raised when caller input is rejected before or by the contract call"""


class TransportError(BlockchainClientError):
    """Raised when the RPC node or fee oracle fails a read"""


class TransactionError(BlockchainClientError):
    """Raised when signing or broadcasting a transaction fails"""
