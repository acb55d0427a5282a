from nsx.base import ManagerApi, NsxApiError
from nsx.client import NsxClient, build_http_client

__all__ = ["ManagerApi", "NsxApiError", "NsxClient", "build_http_client"]
