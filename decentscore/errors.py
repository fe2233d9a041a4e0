# decentscore/errors.py


class DecentScoreError(Exception):
    """Base class for every error raised by the scoring core."""


class ProviderError(DecentScoreError):
    """One evidence source failed; the category degrades to absent evidence."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class UnsupportedChainError(ProviderError):
    """No adapter or RPC endpoint is configured for the requested chain."""

    def __init__(self, provider: str, chain_id):
        super().__init__(provider, f"unsupported chain {chain_id}")
        self.chain_id = chain_id


class RefreshInProgressError(DecentScoreError):
    """Another refresh holds the lock for this (asset, refresh class)."""

    def __init__(self, asset_id: int, refresh_class: str):
        super().__init__("refresh-already-in-progress")
        self.asset_id = asset_id
        self.refresh_class = refresh_class


class AssetNotFoundError(DecentScoreError):
    pass


class JobStateError(DecentScoreError):
    pass
