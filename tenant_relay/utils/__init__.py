# tenant_relay/utils/__init__.py

"""Secret encryption helpers."""

from .security import FernetEncryptor, generate_fernet_key

__all__ = ["FernetEncryptor", "generate_fernet_key"]
