from .directory import AccountDirectory, load_accounts
from .models import TenantCredential

__all__ = ["AccountDirectory", "TenantCredential", "load_accounts"]
