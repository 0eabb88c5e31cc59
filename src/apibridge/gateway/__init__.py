"""Invocation gateway — credentials, middlewares and the per-call pipeline."""

from apibridge.gateway.credentials import (
    ApplicationListing,
    CredentialResolver,
    DashboardSession,
    MultiCredentialResolver,
    SessionCredentialResolver,
    StaticCredentialResolver,
    UserInfoSource,
    select_resolver,
)
from apibridge.gateway.inputs import (
    APPLICATION_ID_ARG,
    REQUEST_BODY_ARG,
    build_input_node,
    compile_operation_input,
)
from apibridge.gateway.invoker import OperationInvoker, is_json_text
from apibridge.gateway.middleware import (
    RequestMiddleware,
    apply_middlewares,
    explode_query_param,
    make_region_middleware,
)
from apibridge.gateway.models import (
    Application,
    CallContext,
    CallParams,
    Credential,
    HeaderNames,
    ToolResult,
)

__all__ = [
    "APPLICATION_ID_ARG",
    "REQUEST_BODY_ARG",
    "Application",
    "ApplicationListing",
    "CallContext",
    "CallParams",
    "Credential",
    "CredentialResolver",
    "DashboardSession",
    "HeaderNames",
    "MultiCredentialResolver",
    "OperationInvoker",
    "RequestMiddleware",
    "SessionCredentialResolver",
    "StaticCredentialResolver",
    "ToolResult",
    "UserInfoSource",
    "apply_middlewares",
    "build_input_node",
    "compile_operation_input",
    "explode_query_param",
    "is_json_text",
    "make_region_middleware",
    "select_resolver",
]
