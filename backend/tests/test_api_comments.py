from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import ALICE, BOB

PAGE = "https://example.com"


def _comment(client: TestClient, headers, body, target_type="webpage", target_id=PAGE, **extra):
    payload = {"targetType": target_type, "targetId": target_id, "body": body}
    payload.update(extra)
    return client.post("/api/v2/comments", json=payload, headers=headers)


def _list(client: TestClient, headers=None, target_type="webpage", target_id=PAGE, **params):
    query = {"targetType": target_type, "targetId": target_id}
    query.update(params)
    return client.get("/api/v2/comments", params=query, headers=headers or {})


def _stored(comment_id: str) -> dict:
    from researchopia.db import get_conn

    with get_conn() as conn:
        row = conn.execute("SELECT * FROM webpage_comments WHERE id = ?", (comment_id,)).fetchone()
        return dict(row)


def test_list_comments_for_unknown_webpage_is_empty(client: TestClient):
    res = _list(client)
    assert res.status_code == 200
    payload = res.json()
    assert payload["success"] is True
    assert "error" not in payload
    assert payload["data"] == {"comments": [], "total": 0, "hasMore": False}


def test_comments_are_ordered_by_creation(client: TestClient):
    for text in ("first", "second", "third"):
        assert _comment(client, ALICE, text).status_code == 201

    ascending = _list(client).json()["data"]["comments"]
    assert [c["body"] for c in ascending] == ["first", "second", "third"]

    descending = _list(client, order="desc").json()["data"]["comments"]
    assert [c["body"] for c in descending] == ["third", "second", "first"]


def test_create_comment_requires_auth(client: TestClient):
    res = _comment(client, {}, "hello")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "Unauthenticated"
    assert _list(client).json()["data"]["total"] == 0


def test_create_paper_comment(client: TestClient, paper):
    res = _comment(client, ALICE, "  nice result  ", target_type="paper", target_id="doi:10.1234/test")
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["body"] == "nice result"
    assert data["targetType"] == "paper"
    assert data["targetId"] == "10.1234/test"
    assert data["userId"] == "alice"
    assert data["isOwnComment"] is True


def test_comment_body_validation(client: TestClient):
    assert _comment(client, ALICE, "   ").status_code == 400
    too_long = _comment(client, ALICE, "x" * 5001)
    assert too_long.status_code == 400
    assert too_long.json()["error"]["code"] == "ValidationError"


def test_owner_can_edit_comment(client: TestClient):
    comment_id = _comment(client, ALICE, "draft").json()["data"]["id"]
    res = client.patch(f"/api/v2/comments/{comment_id}", json={"body": "final"}, headers=ALICE)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["body"] == "final"
    assert data["targetType"] == "webpage"
    assert len(data["targetId"]) == 16


def test_non_owner_cannot_edit_or_delete(client: TestClient):
    comment_id = _comment(client, ALICE, "mine").json()["data"]["id"]
    before = _stored(comment_id)

    edit = client.patch(f"/api/v2/comments/{comment_id}", json={"body": "hijacked"}, headers=BOB)
    assert edit.status_code == 403
    assert edit.json()["error"]["code"] == "Forbidden"

    delete = client.delete(f"/api/v2/comments/{comment_id}", headers=BOB)
    assert delete.status_code == 403

    assert _stored(comment_id) == before


def test_unknown_comment_is_not_found(client: TestClient):
    res = client.patch("/api/v2/comments/does-not-exist", json={"body": "x"}, headers=ALICE)
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NotFound"
    assert client.delete("/api/v2/comments/does-not-exist", headers=ALICE).status_code == 404


def test_edit_and_delete_require_auth(client: TestClient):
    comment_id = _comment(client, ALICE, "mine").json()["data"]["id"]
    assert client.patch(f"/api/v2/comments/{comment_id}", json={"body": "x"}).status_code == 401
    assert client.delete(f"/api/v2/comments/{comment_id}").status_code == 401
    assert _stored(comment_id)["deleted_at"] is None


def test_delete_removes_comment_and_replies(client: TestClient):
    root = _comment(client, ALICE, "root").json()["data"]["id"]
    reply = _comment(client, BOB, "reply", parentId=root).json()["data"]["id"]
    other = _comment(client, BOB, "unrelated").json()["data"]["id"]

    res = client.delete(f"/api/v2/comments/{root}", headers=ALICE)
    assert res.status_code == 204
    assert res.content == b""

    remaining = _list(client).json()["data"]
    assert [c["id"] for c in remaining["comments"]] == [other]
    assert remaining["total"] == 1
    assert _stored(reply)["deleted_at"] is not None
    assert client.patch(f"/api/v2/comments/{root}", json={"body": "x"}, headers=ALICE).status_code == 404


def test_nested_listing_builds_reply_tree(client: TestClient):
    root = _comment(client, ALICE, "root").json()["data"]["id"]
    _comment(client, BOB, "reply", parentId=root)

    data = _list(client, headers=BOB, nested="true").json()["data"]
    assert len(data["comments"]) == 1
    tree = data["comments"][0]
    assert tree["isOwnComment"] is False
    assert [c["body"] for c in tree["children"]] == ["reply"]
    assert tree["children"][0]["isOwnComment"] is True


def test_reply_to_unknown_parent(client: TestClient):
    res = _comment(client, ALICE, "orphan", parentId="missing")
    assert res.status_code == 404


def test_pagination(client: TestClient):
    for i in range(5):
        _comment(client, ALICE, f"c{i}")
    page = _list(client, limit=2, offset=2).json()["data"]
    assert [c["body"] for c in page["comments"]] == ["c2", "c3"]
    assert page["total"] == 5
    assert page["hasMore"] is True

    last = _list(client, limit=2, offset=4).json()["data"]
    assert last["hasMore"] is False

    assert _list(client, limit=0).status_code == 400


def test_anonymous_comment_hides_author_from_others(client: TestClient):
    _comment(client, ALICE, "secret", isAnonymous=True)
    as_bob = _list(client, headers=BOB).json()["data"]["comments"][0]
    assert as_bob["userId"] is None
    assert as_bob["isAnonymous"] is True
    as_alice = _list(client, headers=ALICE).json()["data"]["comments"][0]
    assert as_alice["userId"] == "alice"


def test_reply_parent_on_other_target_is_not_found(client: TestClient):
    parent = _comment(client, ALICE, "on example.com").json()["data"]["id"]
    res = _comment(client, BOB, "cross-target reply", target_id="https://example.org/other", parentId=parent)
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NotFound"
    assert _list(client, target_id="https://example.org/other").json()["data"]["total"] == 0


def test_nested_page_promotes_reply_with_parent_off_page(client: TestClient):
    root = _comment(client, ALICE, "root").json()["data"]["id"]
    _comment(client, BOB, "reply", parentId=root)
    _comment(client, ALICE, "later")

    data = _list(client, nested="true", limit=1, offset=1).json()["data"]
    assert data["total"] == 3
    assert data["hasMore"] is True
    assert len(data["comments"]) == 1
    orphan = data["comments"][0]
    assert orphan["body"] == "reply"
    assert orphan["parentId"] == root
    assert orphan["children"] == []
