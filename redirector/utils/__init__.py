from .url import query_param, safe_url_for_log

__all__ = ["query_param", "safe_url_for_log"]
