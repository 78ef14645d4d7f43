# tests/test_blog.py
import pytest
from httpx import AsyncClient

from app.core.config import settings
from tests.helpers import API, auth_headers, first_workspace_id, register

pytestmark = pytest.mark.asyncio

DRAFT = {"title": "First post", "content": "Content that is long enough"}


async def _setup(client: AsyncClient, mailer, bob_role: str):
    alice = await register(client, mailer, "Alice", "alice@gmail.com")
    bob = await register(client, mailer, "Bob", "bob@gmail.com")
    ws = await first_workspace_id(client, alice)
    r = await client.post(
        f"{API}/workspace/{ws}/member",
        headers=auth_headers(alice),
        json={"email": "bob@gmail.com", "role": bob_role},
    )
    assert r.status_code == 201, r.text
    return alice, bob, ws


async def _create(client, token, ws, payload=DRAFT):
    return await client.post(f"{API}/workspace/{ws}/blog", headers=auth_headers(token), json=payload)


async def _action(client, token, ws, blog_id, action):
    return await client.post(f"{API}/workspace/{ws}/blog/{blog_id}/{action}", headers=auth_headers(token))


async def test_create_blog_as_draft(client: AsyncClient, mailer):
    alice, _, ws = await _setup(client, mailer, "editor")
    r = await _create(client, alice, ws)
    assert r.status_code == 201, r.text
    blog = r.json()["blog"]
    assert blog["status"] == "draft"
    assert blog["workspace_id"] == ws

    r = await client.get(f"{API}/workspace/{ws}/profile", headers=auth_headers(alice))
    assert blog["author_id"] == r.json()["member"]["id"]


async def test_blog_validation(client: AsyncClient, mailer):
    alice, _, ws = await _setup(client, mailer, "editor")
    r = await _create(client, alice, ws, {"title": "Hey", "content": "short"})
    assert r.status_code == 422


async def test_viewer_cannot_create_or_show(client: AsyncClient, mailer):
    alice, bob, ws = await _setup(client, mailer, "viewer")
    assert (await _create(client, bob, ws)).status_code == 403

    blog_id = (await _create(client, alice, ws)).json()["blog"]["id"]
    r = await client.get(f"{API}/workspace/{ws}/blog/{blog_id}", headers=auth_headers(bob))
    assert r.status_code == 403

    # 列表只需要是成員
    r = await client.get(f"{API}/workspace/{ws}/blog", headers=auth_headers(bob))
    assert r.status_code == 200
    assert r.json()["meta"]["total"] == 1


async def test_blog_quota(client: AsyncClient, mailer, monkeypatch):
    monkeypatch.setattr(settings, "BLOG_MAX", 1)
    alice, _, ws = await _setup(client, mailer, "editor")

    assert (await _create(client, alice, ws)).status_code == 201
    r = await _create(client, alice, ws)
    assert r.status_code == 403
    assert "maximum" in r.json()["message"]


async def test_update_only_in_draft(client: AsyncClient, mailer):
    alice, bob, ws = await _setup(client, mailer, "editor")
    blog_id = (await _create(client, bob, ws)).json()["blog"]["id"]

    r = await client.put(
        f"{API}/workspace/{ws}/blog/{blog_id}", headers=auth_headers(bob), json={"title": "Edited title"}
    )
    assert r.status_code == 200
    assert r.json()["blog"]["title"] == "Edited title"
    assert r.json()["blog"]["content"] == DRAFT["content"]

    await _action(client, alice, ws, blog_id, "publish")
    r = await client.put(
        f"{API}/workspace/{ws}/blog/{blog_id}", headers=auth_headers(bob), json={"title": "Edited again"}
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Blog is not in draft status"


async def test_editor_cannot_change_status(client: AsyncClient, mailer):
    alice, bob, ws = await _setup(client, mailer, "editor")
    blog_id = (await _create(client, bob, ws)).json()["blog"]["id"]

    assert (await _action(client, bob, ws, blog_id, "publish")).status_code == 403
    assert (await _action(client, alice, ws, blog_id, "publish")).status_code == 200
    assert (await _action(client, bob, ws, blog_id, "unpublish")).status_code == 403
    assert (await _action(client, bob, ws, blog_id, "archive")).status_code == 403


async def test_manager_lifecycle(client: AsyncClient, mailer):
    alice, bob, ws = await _setup(client, mailer, "manager")
    blog_id = (await _create(client, alice, ws)).json()["blog"]["id"]

    r = await _action(client, bob, ws, blog_id, "archive")
    assert r.status_code == 403
    assert r.json()["message"] == "Blog is not published"

    r = await _action(client, bob, ws, blog_id, "unpublish")
    assert r.status_code == 403
    assert r.json()["message"] == "Blog is already in draft status"

    r = await _action(client, bob, ws, blog_id, "publish")
    assert r.json()["blog"]["status"] == "published"
    assert (await _action(client, bob, ws, blog_id, "publish")).status_code == 403

    r = await _action(client, bob, ws, blog_id, "unpublish")
    assert r.json()["blog"]["status"] == "draft"

    await _action(client, bob, ws, blog_id, "publish")
    r = await _action(client, bob, ws, blog_id, "archive")
    assert r.json()["blog"]["status"] == "archived"

    # archived 是終點
    for action in ("publish", "unpublish", "archive"):
        assert (await _action(client, bob, ws, blog_id, action)).status_code == 403


async def test_delete_only_in_draft(client: AsyncClient, mailer):
    alice, _, ws = await _setup(client, mailer, "editor")
    keep = (await _create(client, alice, ws)).json()["blog"]["id"]
    drop = (await _create(client, alice, ws, {"title": "Second post", "content": "Also long enough"})).json()["blog"]["id"]

    await _action(client, alice, ws, keep, "publish")
    assert (await client.delete(f"{API}/workspace/{ws}/blog/{keep}", headers=auth_headers(alice))).status_code == 403

    assert (await client.delete(f"{API}/workspace/{ws}/blog/{drop}", headers=auth_headers(alice))).status_code == 200
    assert (await client.get(f"{API}/workspace/{ws}/blog/{drop}", headers=auth_headers(alice))).status_code == 404


async def test_blog_of_another_workspace_is_not_found(client: AsyncClient, mailer):
    alice, bob, ws = await _setup(client, mailer, "editor")
    bob_ws = await first_workspace_id(client, bob)
    bob_blog = (await _create(client, bob, bob_ws)).json()["blog"]["id"]

    r = await client.get(f"{API}/workspace/{ws}/blog/{bob_blog}", headers=auth_headers(alice))
    assert r.status_code == 404
    r = await _action(client, alice, ws, bob_blog, "publish")
    assert r.status_code == 404


async def test_list_blogs_filter_and_order(client: AsyncClient, mailer):
    alice, _, ws = await _setup(client, mailer, "editor")
    for title in ("Zebra notes", "Apple pie recipe", "Apple tart recipe"):
        await _create(client, alice, ws, {"title": title, "content": "Content that is long enough"})

    r = await client.get(
        f"{API}/workspace/{ws}/blog",
        headers=auth_headers(alice),
        params={"filter": "apple", "order_by": "title", "order_dir": "asc"},
    )
    assert r.status_code == 200
    assert [b["title"] for b in r.json()["data"]] == ["Apple pie recipe", "Apple tart recipe"]
    assert r.json()["meta"]["total"] == 2


async def test_non_member_cannot_list(client: AsyncClient, mailer):
    alice = await register(client, mailer, "Alice", "alice@gmail.com")
    carol = await register(client, mailer, "Carol", "carol@gmail.com")
    ws = await first_workspace_id(client, alice)

    r = await client.get(f"{API}/workspace/{ws}/blog", headers=auth_headers(carol))
    assert r.status_code == 403
