from urllib.parse import parse_qs, urlsplit


def safe_url_for_log(url: str) -> str:
    """Safe URL for logging (signed media URLs carry credentials in the query)"""
    try:
        parsed = urlsplit(url)
    except ValueError:
        return "invalid_url"

    base_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
    if parsed.query:
        return f"{base_url}?..."
    return base_url


def query_param(url: str, name: str):
    """First value of a query parameter, or None when absent"""
    try:
        values = parse_qs(urlsplit(url).query, keep_blank_values=True).get(name)
    except ValueError:
        return None
    return values[0] if values else None
