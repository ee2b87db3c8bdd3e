class ExplorerError(Exception):
    """Base class for tips-explorer errors"""


class ObjectStoreError(ExplorerError):
    """Object store read or write failed"""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key


class UpstreamUnavailableError(ExplorerError):
    """RPC endpoint call failed for a reason other than a missing block"""
