"""
ICD tool: action dispatch and text formatting.

One MCP tool (`icd`) covers every operation; the `action` argument selects
lookup, search, chapters, children, api or help. Results are rendered as
markdown text blocks rather than raw JSON.
"""

import json
import logging

from pydantic import ValidationError

from .errors import MissingArgumentError
from .models import ICDEntity, ICDParams, ToolResult
from .who_client import WHOICDClient

logger = logging.getLogger(__name__)

TOOL_NAME = "icd"
MAX_LIST_ITEMS = 10

TOOLS = [
    {
        "name": TOOL_NAME,
        "description": (
            "WHO ICD-10 and ICD-11 classification. Actions: lookup (code details), "
            "search (ICD-11 keyword search), chapters, children (subcodes), "
            "api (raw WHO ICD-API GET), help."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["lookup", "search", "chapters", "children", "api", "help"],
                    "description": "Operation to perform",
                },
                "code": {"type": "string", "description": "ICD code (e.g., A00, J18.9, BA00)"},
                "query": {"type": "string", "description": "Search terms (ICD-11 only)"},
                "version": {
                    "type": "string",
                    "enum": ["10", "11"],
                    "description": "ICD version: 10 or 11 (default: 11)",
                },
                "chapter": {"type": "string", "description": "Chapter code to filter by"},
                "max_results": {"type": "integer", "description": "Maximum results (default 10)", "default": 10},
                "path": {"type": "string", "description": "API path for raw requests"},
            },
            "required": ["action"],
        },
    }
]

ICD10_SEARCH_UNSUPPORTED = (
    "ICD-10 search is not supported by the WHO API. Use ICD-11 search or lookup by code.\n\n"
    'Try: {"action": "search", "query": "pneumonia", "version": "11"}'
)

HELP_TEXT = """# ICD MCP Server

Supports both **ICD-10** and **ICD-11** via the WHO ICD-API.

## Actions

**lookup** - Get code details
  {"action": "lookup", "code": "A00"}              (ICD-11 default)
  {"action": "lookup", "code": "J18.9", "version": "10"}

**search** - Find codes by keyword (ICD-11 only)
  {"action": "search", "query": "pneumonia"}
  {"action": "search", "query": "diabetes", "chapter": "05"}

**chapters** - List chapters
  {"action": "chapters"}
  {"action": "chapters", "version": "10"}

**children** - Get subcodes
  {"action": "children", "code": "BA00"}

**api** - Raw WHO API request
  {"action": "api", "path": "/icd/release/11/2024-01/mms"}

## ICD-10 vs ICD-11

| Feature | ICD-10 | ICD-11 |
|---------|--------|--------|
| Lookup | Yes | Yes |
| Search | No* | Yes |
| Chapters | Yes | Yes |
| Children | Yes | Yes |

*ICD-10 search not supported by WHO API

## More Info
- ICD-10: https://icd.who.int/browse10
- ICD-11: https://icd.who.int/browse11"""


def _format_list(heading: str, items: list[str]) -> list[str]:
    lines = [f"\n**{heading}:**"]
    for item in items[:MAX_LIST_ITEMS]:
        lines.append(f"  - {item}")
    if len(items) > MAX_LIST_ITEMS:
        lines.append(f"  - ... and {len(items) - MAX_LIST_ITEMS} more")
    return lines


def format_entity(entity: ICDEntity, version: str) -> str:
    """Render an entity as a markdown block."""
    lines = [f"**{entity.code}**: {entity.title}"]

    if entity.definition:
        lines.append(f"\n**Definition:** {entity.definition}")
    if entity.long_definition and entity.long_definition != entity.definition:
        lines.append(f"\n**Details:** {entity.long_definition}")
    if entity.coding_note:
        lines.append(f"\n**Coding Note:** {entity.coding_note}")
    if entity.inclusions:
        lines.extend(_format_list("Includes", entity.inclusions))
    if entity.exclusions:
        lines.extend(_format_list("Excludes", entity.exclusions))
    if entity.browser_url:
        lines.append(f"\n**Browser:** {entity.browser_url}")

    lines.append(f"\n_ICD-{version}_")
    return "\n".join(lines)


async def handle_lookup(code: str, version: str, client: WHOICDClient) -> ToolResult:
    entity = await client.get_code(code, version)
    if not entity:
        return ToolResult.text(
            f"ICD-{version} code '{code}' not found.\n\n"
            f'Try searching: {{"action": "search", "query": "...", "version": "{version}"}}'
        )
    return ToolResult.text(format_entity(entity, version))


async def handle_search(query: str, max_results: int, chapter: str | None, client: WHOICDClient) -> ToolResult:
    results = await client.search_icd11(query, max_results, chapter)
    if not results:
        return ToolResult.text(f"No ICD-11 codes found for '{query}'. Try different search terms.")

    lines = [f"**ICD-11 Search Results for '{query}':**\n"]
    for i, result in enumerate(results, start=1):
        lines.append(f"{i}. **{result.code}**: {result.title}")
    lines.append('\nUse {"action": "lookup", "code": "..."} for full details.')
    return ToolResult.text("\n".join(lines))


async def handle_chapters(version: str, client: WHOICDClient) -> ToolResult:
    chapters = await client.get_chapters(version)
    if not chapters:
        return ToolResult.text(f"Could not retrieve ICD-{version} chapters.")

    lines = [f"**ICD-{version} Chapters:**\n"]
    for chapter in chapters:
        lines.append(f"- **{chapter.code}**: {chapter.title}")
    lines.append('\nUse {"action": "children", "code": "..."} to explore a chapter.')
    return ToolResult.text("\n".join(lines))


async def handle_children(code: str, version: str, client: WHOICDClient) -> ToolResult:
    children = await client.get_children(code, version)
    if not children:
        return ToolResult.text(f"No child codes found for '{code}'. This may be a leaf-level code.")

    lines = [f"**Child codes under {code} (ICD-{version}):**\n"]
    for child in children:
        lines.append(f"- **{child.code}**: {child.title}")
    return ToolResult.text("\n".join(lines))


async def handle_api(path: str, client: WHOICDClient) -> ToolResult:
    if not path.startswith("/"):
        return ToolResult.error("Path must start with /")

    try:
        result = await client.api_request(path)
    except Exception as e:
        logger.warning("Raw API request failed for %s: %s", path, e)
        return ToolResult.error(f"API Error: {e}")
    return ToolResult.text(json.dumps(result, indent=2))


def handle_help() -> ToolResult:
    return ToolResult.text(HELP_TEXT)


def _validation_message(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{location}: {err.get('msg')}")
    return "Invalid arguments: " + "; ".join(parts)


async def handle_action(arguments: dict, client: WHOICDClient) -> ToolResult:
    """Validate tool arguments and dispatch to the matching action.

    Never raises: every failure comes back as an error-flagged ToolResult.
    """
    try:
        params = ICDParams.model_validate(arguments or {})
    except ValidationError as e:
        return ToolResult.error(f"Error: {_validation_message(e)}")

    try:
        version = params.version or "11"

        if params.action == "lookup":
            if not params.code:
                raise MissingArgumentError("code required for lookup")
            return await handle_lookup(params.code, version, client)

        if params.action == "search":
            if not params.query:
                raise MissingArgumentError("query required for search")
            if version == "10":
                return ToolResult.error(ICD10_SEARCH_UNSUPPORTED)
            return await handle_search(params.query, params.max_results or 10, params.chapter, client)

        if params.action == "chapters":
            return await handle_chapters(version, client)

        if params.action == "children":
            if not params.code:
                raise MissingArgumentError("code required for children")
            return await handle_children(params.code, version, client)

        if params.action == "api":
            if not params.path:
                raise MissingArgumentError("path required for api")
            return await handle_api(params.path, client)

        return handle_help()

    except MissingArgumentError as e:
        return ToolResult.error(f"Error: {e}")
    except Exception as e:
        logger.exception("ICD action '%s' failed", params.action)
        return ToolResult.error(f"Error: {e}")
