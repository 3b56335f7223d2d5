from .admin_log import AdminLogger, get_client_ip, redact_sensitive

__all__ = ["AdminLogger", "get_client_ip", "redact_sensitive"]
