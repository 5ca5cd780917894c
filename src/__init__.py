"""assetledger: resumable asset upload and on-chain index commit pipeline."""

from assetledger.version import __version__

__all__ = ["__version__"]
