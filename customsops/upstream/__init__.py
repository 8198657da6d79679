"""HTTP clients for the Azure services the dashboard reads from."""

from customsops.infrastructure.retry import UpstreamError
from customsops.upstream.function_app import FunctionAppClient, get_function_app_client
from customsops.upstream.logic_app import LogicAppClient, get_logic_app_client

__all__ = [
    "FunctionAppClient",
    "LogicAppClient",
    "UpstreamError",
    "get_function_app_client",
    "get_logic_app_client",
]
