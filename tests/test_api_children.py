"""Integration tests for the /api/v1/families/{id}/children endpoints."""

from datetime import date, timedelta


def _url(parent) -> str:
    return f"/api/v1/families/{parent['family_id']}/children"


class TestChildren:
    async def test_create_and_list(self, client, parent):
        resp = await client.post(
            _url(parent),
            headers=parent["headers"],
            json={"name": " Mia ", "birthdate": "2016-04-02"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["name"] == "Mia"
        assert data["color"] == "#4f46e5"
        assert data["family_id"] == parent["family_id"]

        await client.post(
            _url(parent),
            headers=parent["headers"],
            json={"name": "Leo", "birthdate": "2014-09-20", "color": "#10B981"},
        )
        children = (await client.get(_url(parent), headers=parent["headers"])).json()
        assert [c["name"] for c in children] == ["Leo", "Mia"]

    async def test_update(self, client, parent):
        child = (await client.post(
            _url(parent),
            headers=parent["headers"],
            json={"name": "Mia", "birthdate": "2016-04-02"},
        )).json()

        resp = await client.put(
            f"{_url(parent)}/{child['id']}",
            headers=parent["headers"],
            json={"color": "#ef4444"},
        )
        assert resp.status_code == 200
        assert resp.json()["color"] == "#ef4444"
        assert resp.json()["name"] == "Mia"

    async def test_delete(self, client, parent):
        child = (await client.post(
            _url(parent),
            headers=parent["headers"],
            json={"name": "Mia", "birthdate": "2016-04-02"},
        )).json()

        resp = await client.delete(f"{_url(parent)}/{child['id']}", headers=parent["headers"])
        assert resp.status_code == 204
        resp = await client.delete(f"{_url(parent)}/{child['id']}", headers=parent["headers"])
        assert resp.status_code == 404

    async def test_future_birthdate_rejected(self, client, parent):
        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        resp = await client.post(
            _url(parent),
            headers=parent["headers"],
            json={"name": "Mia", "birthdate": tomorrow},
        )
        assert resp.status_code == 422
        assert resp.json()["field"] == "birthdate"

    async def test_blank_name_rejected(self, client, parent):
        resp = await client.post(
            _url(parent),
            headers=parent["headers"],
            json={"name": "  ", "birthdate": "2016-04-02"},
        )
        assert resp.status_code == 422
        assert resp.json()["field"] == "name"

    async def test_bad_color_rejected(self, client, parent):
        resp = await client.post(
            _url(parent),
            headers=parent["headers"],
            json={"name": "Mia", "birthdate": "2016-04-02", "color": "blue"},
        )
        assert resp.status_code == 422
        assert resp.json()["field"] == "color"

    async def test_color_with_trailing_newline_rejected(self, client, parent):
        resp = await client.post(
            _url(parent),
            headers=parent["headers"],
            json={"name": "Mia", "birthdate": "2016-04-02", "color": "#ef4444\n"},
        )
        assert resp.status_code == 422
        assert resp.json()["field"] == "color"

    async def test_non_member_forbidden(self, client, parent, make_headers):
        resp = await client.get(_url(parent), headers=make_headers())
        assert resp.status_code == 403
