from .client import HttpxUpstreamClient, upstream_list

__all__ = ["HttpxUpstreamClient", "upstream_list"]
