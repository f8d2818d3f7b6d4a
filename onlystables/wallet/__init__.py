from .signer import LocalAccountSigner, WalletSigner

__all__ = ["LocalAccountSigner", "WalletSigner"]
