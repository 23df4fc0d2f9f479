from .directory import SiteDirectory, ensure_local_document, parse_sources

__all__ = ["SiteDirectory", "ensure_local_document", "parse_sources"]
