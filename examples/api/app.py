"""API: a small JSON REST resource served by a waypoint Router.

CRUD for an "items" resource. Demonstrates named path parameters with
constraints, query constraints, JSON bodies assembled before the handler
runs, and a per-route timeout.

Run:
    cd examples/api && uvicorn app:router
List the route table:
    cd examples/api && waypoint routes app:router
"""

import logging
from dataclasses import dataclass

from waypoint import BodyDecodeError, RequestContext, Response, Router

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

router = Router()
router.param("item_id", r"(\d+)")
router.qparam("limit", r"^\d{1,3}$")


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Item:
    id: int
    title: str
    done: bool


_items: dict[int, Item] = {}
_next_id = 1


def _to_dict(item: Item) -> dict:
    return {"id": item.id, "title": item.title, "done": item.done}


def _bad_body(ctx: RequestContext) -> Response | None:
    if isinstance(ctx.body, BodyDecodeError):
        return Response.json({"error": str(ctx.body)}, status=400)
    if not isinstance(ctx.body, dict) or not ctx.body.get("title"):
        return Response.json({"error": "title is required"}, status=422)
    return None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/api/items", query=["limit"])
def list_limited(ctx: RequestContext) -> Response:
    """List at most ``limit`` items."""
    limit = int(ctx.query["limit"])
    items = sorted(_items.values(), key=lambda x: x.id)[:limit]
    return Response.json({"data": [_to_dict(i) for i in items], "limit": limit})


@router.get("/api/items")
def list_items(ctx: RequestContext) -> Response:
    """List every item."""
    items = sorted(_items.values(), key=lambda x: x.id)
    return Response.json({"data": [_to_dict(i) for i in items]})


@router.get("/api/items/:item_id")
def get_item(ctx: RequestContext) -> Response:
    item = _items.get(int(ctx.params["item_id"]))
    if item is None:
        return Response.json({"error": "Item not found"}, status=404)
    return Response.json(_to_dict(item))


@router.post("/api/items", timeout=5)
def create_item(ctx: RequestContext) -> Response:
    """Create an item from a JSON or form body."""
    global _next_id
    if (problem := _bad_body(ctx)) is not None:
        return problem
    item = Item(id=_next_id, title=str(ctx.body["title"]), done=bool(ctx.body.get("done", False)))
    _items[item.id] = item
    _next_id += 1
    return Response.json(_to_dict(item), status=201).with_header("Location", f"/api/items/{item.id}")


@router.put("/api/items/:item_id", timeout=5)
def update_item(ctx: RequestContext) -> Response:
    item_id = int(ctx.params["item_id"])
    if item_id not in _items:
        return Response.json({"error": "Item not found"}, status=404)
    if (problem := _bad_body(ctx)) is not None:
        return problem
    item = Item(id=item_id, title=str(ctx.body["title"]), done=bool(ctx.body.get("done", False)))
    _items[item_id] = item
    return Response.json(_to_dict(item))


@router.delete("/api/items/:item_id")
async def delete_item(ctx: RequestContext) -> None:
    """Delete an item, writing the response directly."""
    if _items.pop(int(ctx.params["item_id"]), None) is None:
        await ctx.response.write_head(404, {"content-type": "application/json"})
        await ctx.response.end(b'{"error": "Item not found"}')
        return
    await ctx.response.write_head(204)
    await ctx.response.end()
