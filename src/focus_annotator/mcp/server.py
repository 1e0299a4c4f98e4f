"""MCP server exposing focus order proposal and validation tools."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from focus_annotator.config import ServiceSettings
from focus_annotator.core.heuristics.ordering import validate_sequence
from focus_annotator.core.protocol.messages import build_request
from focus_annotator.core.tree.host import DictHostNode
from focus_annotator.core.tree.serializer import SerializeOptions, serialize_with_stats
from focus_annotator.models.focus import FocusItem
from focus_annotator.service.annotator import AnnotationService


@dataclass
class ServerContext:
    service: AnnotationService


# --- Core functions (testable without MCP context) ---


def focus_serialize(
    tree: dict[str, Any],
    *,
    platform: str = "web",
    max_depth: int | None = None,
    max_node_count: int | None = None,
) -> dict[str, Any]:
    """Serialize a design-document node (JSON export) into a focus-analysis tree.

    Args:
        tree: Frame node as exported by the design tool.
        platform: "web" or "native".
        max_depth: Depth bound (default 10).
        max_node_count: Node count bound (default 500).
    """
    defaults = SerializeOptions()
    options = SerializeOptions(
        max_depth=max_depth if max_depth is not None else defaults.max_depth,
        max_node_count=max_node_count if max_node_count is not None else defaults.max_node_count,
    )
    try:
        snapshot, stats = serialize_with_stats(DictHostNode(tree), platform, options)
    except ValueError as e:
        return {"error": str(e)}
    return {
        "tree": snapshot.to_wire(),
        "node_count": stats.node_count,
        "truncated": stats.truncated,
    }


def focus_propose_order(
    service: AnnotationService,
    *,
    platform: str,
    frames: list[dict[str, Any]] | None = None,
    tree: dict[str, Any] | None = None,
    prompt: str | None = None,
) -> dict[str, Any]:
    """Propose a focus order through the annotate pipeline.

    Pass either ``frames`` (already serialized, request wire shape) or
    ``tree`` (a raw design-document frame, serialized here first).
    """
    if tree is not None:
        try:
            snapshot, _stats = serialize_with_stats(DictHostNode(tree), platform)
        except ValueError as e:
            return {
                "ok": False,
                "error": "bad_request",
                "reason": "invalid_platform",
                "detail": str(e),
                "status": 400,
            }
        payload: dict[str, Any] = build_request(snapshot, platform, prompt).to_wire()
    else:
        payload = {"platform": platform, "frames": frames, "prompt": prompt}

    result = service.handle(payload)
    return {**result.body, "status": result.status}


def focus_validate_order(
    items: list[dict[str, Any]],
    *,
    expected_interactive: bool = False,
) -> dict[str, Any]:
    """Check a focus order for duplicate or gapped numbers and backward jumps.

    Args:
        items: Entries with id, label, role, and optionally order and position.
        expected_interactive: The frame had focusable nodes, so an order
            without interactive roles is reported.
    """
    parsed = [
        FocusItem.from_dict(raw, order=i, source="manual")
        for i, raw in enumerate(items, start=1)
        if isinstance(raw, dict)
    ]
    report = validate_sequence(parsed, expected_interactive=expected_interactive)
    return {"valid": report.is_valid, "issues": list(report.issues), "count": len(parsed)}


# --- Server setup ---


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Build the annotate pipeline from the environment."""
    settings = ServiceSettings.from_env()
    service = AnnotationService.from_settings(settings)
    if not service.model_ready:
        logger.info("No model credentials; proposals use the heuristic order only")
    yield ServerContext(service=service)


mcp_server = FastMCP(
    "focus-annotator",
    instructions="""\
Proposes keyboard/touch focus order for UI frames exported from a design tool.

1. Use focus_serialize_tool to inspect how a frame is read (roles, focusable
   flags, inferred controls).
2. Use focus_propose_order_tool with the raw frame (`tree`) or serialized
   `frames` to get an ordered list of focus stops with labels and roles.
3. After editing an order by hand, run focus_validate_order_tool on it.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def focus_serialize_tool(
    tree: dict[str, Any],
    platform: str = "web",
    max_depth: int | None = None,
    max_node_count: int | None = None,
) -> dict[str, Any]:
    """Serialize a design-document frame for focus analysis.

    Args:
        tree: Frame node as exported by the design tool (type, name,
            absoluteBoundingBox, children, characters, pluginData).
        platform: "web" or "native".
        max_depth: Depth bound (default 10).
        max_node_count: Node count bound (default 500).
    """
    return focus_serialize(
        tree, platform=platform, max_depth=max_depth, max_node_count=max_node_count
    )


@mcp_server.tool()
async def focus_propose_order_tool(
    ctx: Context,
    platform: str,
    tree: dict[str, Any] | None = None,
    frames: list[dict[str, Any]] | None = None,
    prompt: str | None = None,
) -> dict[str, Any]:
    """Propose a focus order for one or more frames.

    Identical frames are answered from cache. Without model credentials,
    or when the model fails, the reading-order heuristic is returned.

    Args:
        platform: "web" or "native".
        tree: Raw design-document frame; serialized before annotating.
        frames: Already serialized frames ({id, name, box, children}).
        prompt: Optional free-text hint for the model.
    """
    service = _ctx(ctx).service
    return await asyncio.to_thread(
        focus_propose_order,
        service,
        platform=platform,
        frames=frames,
        tree=tree,
        prompt=prompt,
    )


@mcp_server.tool()
async def focus_validate_order_tool(
    items: list[dict[str, Any]],
    expected_interactive: bool = False,
) -> dict[str, Any]:
    """Validate a focus order.

    Reports duplicate or non-contiguous order numbers, a missing
    interactive element, and stops that jump backwards vertically.

    Args:
        items: Focus items ({id, label, role, order?, position?}).
        expected_interactive: Report an order with no interactive roles.
    """
    return focus_validate_order(items, expected_interactive=expected_interactive)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from focus_annotator.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
