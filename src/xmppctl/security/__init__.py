from xmppctl.security.encryption import (
    PasswordEncryptor,
    is_encrypted,
    update_config_with_encrypted_password,
)

__all__ = ["PasswordEncryptor", "is_encrypted", "update_config_with_encrypted_password"]
