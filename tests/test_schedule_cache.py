"""Tests for the Redis-backed schedule rule cache."""

import json

from coparent.config import settings
from coparent.core.security import Identity
from coparent.schemas.schedule_rule import DayEntry, OddEvenRule, ParentRole, WeeklyTemplateRule
from coparent.services import schedule_service
from coparent.services.membership_service import create_family

ANNA = Identity(user_id="uid-anna", email="anna@example.com", display_name="Anna")

ODD_EVEN = {
    "type": "ODD_EVEN",
    "week_start": "MON",
    "anchor_date": "2024-01-01",
    "anchor_week_is": "ODD",
    "parent_on_odd": "parentA",
    "parent_on_even": "parentB",
}

ALL_WITH_B = {
    "type": "WEEKLY_TEMPLATE",
    "week_start": "MON",
    "days": [{"dow": d, "owner": "parentB"} for d in range(7)],
}


def _key(family_id: str) -> str:
    return f"rules:family:{family_id}"


def _schedule_url(parent) -> str:
    return f"/api/v1/families/{parent['family_id']}/schedule"


def _rule_url(parent) -> str:
    return f"/api/v1/families/{parent['family_id']}/schedule-rule"


# Monday of an odd week: parentA under ODD_EVEN, parentB under ALL_WITH_B
MONDAY = {"start": "2024-01-01", "end": "2024-01-01"}


class TestRuleCache:
    async def test_save_writes_committed_rule_to_cache(self, client, parent, fake_redis):
        resp = await client.put(_rule_url(parent), headers=parent["headers"], json=ODD_EVEN)
        assert resp.status_code == 200

        cached = json.loads(fake_redis.store[_key(parent["family_id"])])
        assert cached["type"] == "ODD_EVEN"
        assert fake_redis.ttls[_key(parent["family_id"])] == settings.RULE_CACHE_TTL

    async def test_queries_are_served_from_cache(self, client, parent, fake_redis):
        await client.put(_rule_url(parent), headers=parent["headers"], json=ODD_EVEN)
        fake_redis.store[_key(parent["family_id"])] = json.dumps(ALL_WITH_B)

        resp = await client.get(_schedule_url(parent), headers=parent["headers"], params=MONDAY)
        assert resp.json()[0]["owner"] == "parentB"

    async def test_miss_fills_cache(self, client, parent, fake_redis):
        await client.put(_rule_url(parent), headers=parent["headers"], json=ODD_EVEN)
        fake_redis.store.clear()

        resp = await client.get(_schedule_url(parent), headers=parent["headers"], params=MONDAY)
        assert resp.json()[0]["owner"] == "parentA"
        assert json.loads(fake_redis.store[_key(parent["family_id"])])["type"] == "ODD_EVEN"

    async def test_switching_variant_replaces_cached_rule(self, client, parent, fake_redis):
        await client.put(_rule_url(parent), headers=parent["headers"], json=ODD_EVEN)
        resp = await client.get(_schedule_url(parent), headers=parent["headers"], params=MONDAY)
        assert resp.json()[0]["owner"] == "parentA"

        await client.put(_rule_url(parent), headers=parent["headers"], json=ALL_WITH_B)
        resp = await client.get(_schedule_url(parent), headers=parent["headers"], params=MONDAY)
        assert resp.json()[0]["owner"] == "parentB"

        cached = json.loads(fake_redis.store[_key(parent["family_id"])])
        assert cached["type"] == "WEEKLY_TEMPLATE"
        assert "anchor_date" not in cached

    async def test_rejected_rule_leaves_cache_alone(self, client, parent, fake_redis):
        await client.put(_rule_url(parent), headers=parent["headers"], json=ODD_EVEN)
        bad = {**ODD_EVEN, "anchor_date": "2024-13-01"}
        resp = await client.put(_rule_url(parent), headers=parent["headers"], json=bad)
        assert resp.status_code == 422

        cached = json.loads(fake_redis.store[_key(parent["family_id"])])
        assert cached["anchor_date"] == "2024-01-01"


class TestStaleReader:
    async def test_reader_cannot_restore_replaced_rule(self, file_session_factory, fake_redis):
        """A reader that loaded the old row caches nothing once a save has committed."""
        async with file_session_factory() as setup:
            family = await create_family(setup, ANNA, "Familie", "Europe/Berlin")
            await schedule_service.save_rule(setup, family.id, OddEvenRule(anchor_date="2024-01-01"))
            await setup.commit()
            family_id = family.id

        template = WeeklyTemplateRule(
            days=[DayEntry(dow=d, owner=ParentRole.PARENT_B) for d in range(7)],
        )

        async def _save_in_between():
            async with file_session_factory() as writer:
                row = await schedule_service.save_rule(writer, family_id, template)
                await writer.commit()
                await schedule_service.publish_rule(family_id, row.document)

        fake_redis.before_set = _save_in_between

        async with file_session_factory() as reader:
            stale = await schedule_service.get_active_document(reader, family_id)
        assert stale.type == "ODD_EVEN"

        cached = json.loads(fake_redis.store[_key(family_id)])
        assert cached["type"] == "WEEKLY_TEMPLATE"

        async with file_session_factory() as later:
            current = await schedule_service.get_active_document(later, family_id)
        assert current.type == "WEEKLY_TEMPLATE"
