from .access import AccessGateUseCase
from .detail import DetailUseCase
from .search_single import SearchSingleUseCase
from .search_stream import SearchStreamUseCase
from .tmdb_proxy import TmdbProxyUseCase

__all__ = [
    "AccessGateUseCase",
    "DetailUseCase",
    "SearchSingleUseCase",
    "SearchStreamUseCase",
    "TmdbProxyUseCase",
]
