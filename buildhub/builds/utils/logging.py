"""
Logging utilities for the builds module.
"""

SENSITIVE_KEYS = {
    'token', 'access_token', 'secret', 'password', 'authorization',
    'api_key', 'private_key',
}


def mask_sensitive_config(config_dict):
    """
    Mask sensitive values in a configuration dictionary.

    Shows the first 4 characters followed by *** for keys that look like
    credentials (GitHub token, callback token, ...).

    Args:
        config_dict: Configuration dictionary to mask

    Returns:
        Copy of the dictionary with sensitive values masked
    """
    if not config_dict or not isinstance(config_dict, dict):
        return config_dict

    sanitized = {}
    for key, value in config_dict.items():
        key_lower = str(key).lower()
        is_sensitive = any(
            sensitive_key in key_lower for sensitive_key in SENSITIVE_KEYS
        )
        if is_sensitive and value:
            if isinstance(value, str) and len(value) > 4:
                sanitized[key] = f"{value[:4]}***"
            else:
                sanitized[key] = "***"
        else:
            sanitized[key] = value
    return sanitized
