from .signer import SignedURL, UrlSigner, quote_key

__all__ = ["SignedURL", "UrlSigner", "quote_key"]
