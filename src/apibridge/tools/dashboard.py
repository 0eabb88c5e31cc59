"""Dashboard tools — tools that no API description declares.

``getUserInfo`` and ``getApplications`` answer straight from the dashboard
session.  ``setAttributesForFaceting`` and ``setCustomRanking`` write one
index setting and read the settings back, returning a sentence the agent
can relay.

Usage::

    for tool in dashboard_tools(session, resolver):
        if tool_filter.is_allowed(tool.name):
            registry.add_tool(tool)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from apibridge.errors import TransportError
from apibridge.gateway.credentials import ApplicationListing, UserInfoSource
from apibridge.gateway.inputs import APPLICATION_ID_ARG
from apibridge.gateway.models import HeaderNames, ToolResult
from apibridge.schema.compiler import compile_schema
from apibridge.schema.nodes import ArraySchema, EnumSchema, ObjectSchema, StringSchema
from apibridge.tools.models import Tool
from apibridge.utils.telemetry import ATTR_APPLICATION_ID, ATTR_TOOL_NAME, get_tracer

if TYPE_CHECKING:
    from apibridge.gateway.credentials import CredentialResolver
    from apibridge.schema.compiler import CompiledSchema
    from apibridge.schema.nodes import SchemaNode

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

GET_USER_INFO = "getUserInfo"
GET_APPLICATIONS = "getApplications"
SET_ATTRIBUTES_FOR_FACETING = "setAttributesForFaceting"
SET_CUSTOM_RANKING = "setCustomRanking"

SEARCH_URL = "https://{application_id}.algolia.net"

_NO_INPUT: dict[str, Any] = ObjectSchema().to_json_schema()

_FACETING_DESCRIPTION = (
    "Lets you create categories based on specific attributes so users can filter "
    "search results by those categories. For example, if you have an index of books, "
    "you could categorize them by author and genre. To enable this categorization, "
    "declare your attributes as `attributesForFaceting`."
)
_CUSTOM_RANKING_DESCRIPTION = (
    "Set the custom ranking for an Algolia index. This allows you to define how the "
    "results are sorted based on the attributes you specify."
)


async def _ask_session(call: Callable[[], Any]) -> Any:
    try:
        return await call()
    except httpx.TransportError as exc:
        raise TransportError("dashboard", str(exc)) from exc


def get_user_info_tool(session: UserInfoSource) -> Tool:
    """Return the ``getUserInfo`` tool."""

    async def callback(arguments: dict[str, Any]) -> ToolResult:
        user = await _ask_session(session.get_user)
        return ToolResult(text=json.dumps(user))

    return Tool(
        name=GET_USER_INFO,
        description="Get information about the user in the Algolia system",
        input_schema=_NO_INPUT,
        callback=callback,
    )


def get_applications_tool(session: ApplicationListing) -> Tool:
    """Return the ``getApplications`` tool."""

    async def callback(arguments: dict[str, Any]) -> ToolResult:
        applications = await _ask_session(session.list_applications)
        payload = [app.model_dump(by_alias=True, exclude_none=True) for app in applications]
        return ToolResult(text=json.dumps(payload))

    return Tool(
        name=GET_APPLICATIONS,
        description="List the Algolia applications the current user can access",
        input_schema=_NO_INPUT,
        callback=callback,
    )


class SettingsUpdater:
    """Writes one index setting, then reads the index settings back.

    The write and the read are two independent calls; the indexing task the
    write creates is not awaited.  A non-success status on either call is
    returned as the result.
    """

    def __init__(
        self,
        name: str,
        setting: str,
        input_schema: CompiledSchema,
        resolver: CredentialResolver,
        *,
        to_setting: Callable[[Any], Any],
        describe: Callable[[Any], str],
        headers: HeaderNames | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        search_url: str = SEARCH_URL,
    ) -> None:
        self._name = name
        self._setting = setting
        self._input = input_schema
        self._resolver = resolver
        self._to_setting = to_setting
        self._describe = describe
        self._headers = headers or HeaderNames()
        self._transport = transport
        self._search_url = search_url

    async def __call__(self, arguments: dict[str, Any]) -> ToolResult:
        with _tracer.start_as_current_span("apibridge.tool.invoke") as span:
            span.set_attribute(ATTR_TOOL_NAME, self._name)

            values = self._input.validate(arguments)
            credential = await self._resolver.resolve(values.get(APPLICATION_ID_ARG))
            span.set_attribute(ATTR_APPLICATION_ID, credential.application_id)

            base_url = self._search_url.format(application_id=credential.application_id)
            url = f"{base_url}/1/indexes/{quote(values['indexName'], safe='')}/settings"
            headers = {
                self._headers.application_id: credential.application_id,
                self._headers.api_key: credential.api_key,
            }
            body = json.dumps({self._setting: self._to_setting(values[self._setting])})

            try:
                async with httpx.AsyncClient(transport=self._transport) as client:
                    written = await client.put(
                        url, headers={**headers, "Content-Type": "application/json"}, content=body
                    )
                    if not written.is_success:
                        return self._failed(written)
                    current = await client.get(url, headers=headers)
            except httpx.HTTPError as exc:
                raise TransportError(url, str(exc)) from exc

            if not current.is_success:
                return self._failed(current)
            try:
                settings = current.json()
            except ValueError:
                return ToolResult(text=current.text, status_code=current.status_code)
            return ToolResult(
                text=self._describe(settings.get(self._setting)),
                status_code=current.status_code,
            )

    def _failed(self, response: httpx.Response) -> ToolResult:
        logger.warning("%s returned HTTP %d", self._name, response.status_code)
        return ToolResult(text=response.text, status_code=response.status_code)


def _settings_input(setting: str, node: SchemaNode, *, require_application_id: bool) -> ObjectSchema:
    required = ["indexName", setting]
    if require_application_id:
        required.insert(0, APPLICATION_ID_ARG)
    return ObjectSchema(
        properties={
            APPLICATION_ID_ARG: StringSchema(
                description="The application ID that owns the index to manipulate"
            ),
            "indexName": StringSchema(description="The index name whose settings to change"),
            setting: node,
        },
        required=tuple(required),
    )


def set_attributes_for_faceting_tool(
    resolver: CredentialResolver,
    *,
    headers: HeaderNames | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Tool:
    """Return the ``setAttributesForFaceting`` tool."""
    node = _settings_input(
        "attributesForFaceting",
        ArraySchema(
            items=StringSchema(),
            min_items=1,
            description="The attributes on which you want to be able to apply category filters",
        ),
        require_application_id=resolver.requires_application_id,
    )
    schema = compile_schema(node, name=f"{SET_ATTRIBUTES_FOR_FACETING}Input")
    updater = SettingsUpdater(
        SET_ATTRIBUTES_FOR_FACETING,
        "attributesForFaceting",
        schema,
        resolver,
        to_setting=list,
        describe=_describe_faceting,
        headers=headers,
        transport=transport,
    )
    return Tool(
        name=SET_ATTRIBUTES_FOR_FACETING,
        description=_FACETING_DESCRIPTION,
        input_schema=schema.shape,
        callback=updater,
    )


def set_custom_ranking_tool(
    resolver: CredentialResolver,
    *,
    headers: HeaderNames | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Tool:
    """Return the ``setCustomRanking`` tool."""
    criterion = ObjectSchema(
        properties={
            "attribute": StringSchema(description="The attribute name"),
            "direction": EnumSchema(
                values=("asc", "desc"),
                base_type="string",
                default="desc",
                has_default=True,
                description="The direction of the ranking (can be either 'asc' or 'desc')",
            ),
        },
        required=("attribute",),
    )
    node = _settings_input(
        "customRanking",
        ArraySchema(
            items=criterion,
            min_items=1,
            description="The attributes you want to use for custom ranking",
        ),
        require_application_id=resolver.requires_application_id,
    )
    schema = compile_schema(node, name=f"{SET_CUSTOM_RANKING}Input")
    updater = SettingsUpdater(
        SET_CUSTOM_RANKING,
        "customRanking",
        schema,
        resolver,
        to_setting=_ranking_criteria,
        describe=_describe_custom_ranking,
        headers=headers,
        transport=transport,
    )
    return Tool(
        name=SET_CUSTOM_RANKING,
        description=_CUSTOM_RANKING_DESCRIPTION,
        input_schema=schema.shape,
        callback=updater,
    )


def dashboard_tools(
    session: object,
    resolver: CredentialResolver,
    *,
    headers: HeaderNames | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Tool]:
    """Build every dashboard tool *session* can back, in registration order."""
    tools: list[Tool] = []
    if isinstance(session, UserInfoSource):
        tools.append(get_user_info_tool(session))
    else:
        logger.debug("Session cannot describe the user; %s not available", GET_USER_INFO)
    if isinstance(session, ApplicationListing):
        tools.append(get_applications_tool(session))
    else:
        logger.debug("Session cannot list applications; %s not available", GET_APPLICATIONS)
    tools.append(set_attributes_for_faceting_tool(resolver, headers=headers, transport=transport))
    tools.append(set_custom_ranking_tool(resolver, headers=headers, transport=transport))
    return tools


def _ranking_criteria(criteria: list[dict[str, Any]]) -> list[str]:
    return [f"{c.get('direction', 'desc')}({c['attribute']})" for c in criteria]


def _describe_faceting(values: list[str] | None) -> str:
    if values is None:
        return "No attributes for faceting found."
    return "The current attributes for faceting are: " + ", ".join(values)


def _describe_custom_ranking(values: list[str] | None) -> str:
    if values is None:
        return "No attributes used for custom ranking found."
    return "The current attributes used for custom ranking: " + ", ".join(values)
