"""Tests for the register_child, update_child and delete_child tools."""

from little_library.tools.children import (
    delete_child_handler,
    register_child_handler,
    update_child_handler,
)

MISSING_ID = "00000000-0000-0000-0000-000000000000"


class TestRegisterChildTool:
    async def test_register_anonymous(self, library):
        result = await register_child_handler({}, library)

        child = result["data"]["child"]
        assert child["name"] is None
        assert library.children.allocator.is_valid_format(child["emoji_id"])
        assert child["emoji_id"] in result["content"][0]["text"]

    async def test_register_with_details(self, library):
        result = await register_child_handler({"name": "Leo", "grade_or_class": "1A"}, library)
        assert result["data"]["child"]["grade_or_class"] == "1A"

    async def test_name_too_long(self, library):
        result = await register_child_handler({"name": "x" * 201}, library)

        assert result["error"]["status"] == 400
        assert result["error"]["details"][0]["field"] == "name"


class TestUpdateChildTool:
    async def test_custom_emoji_id(self, library, child):
        result = await update_child_handler(
            {"child_id": child.id, "custom_emoji_id": "🦊⭐🍕"}, library
        )
        assert result["data"]["child"]["emoji_id"] == "🦊⭐🍕"

    async def test_custom_emoji_id_taken(self, library, child):
        other = library.children.register(library.tenant)

        result = await update_child_handler(
            {"child_id": other.id, "custom_emoji_id": child.emoji_id, "name": "Renamed"},
            library,
        )

        assert result["isError"] is True
        assert result["error"]["status"] == 409
        unchanged = {c.id: c for c in library.children.list_children(library.tenant)}[other.id]
        assert unchanged.emoji_id == other.emoji_id
        assert unchanged.name is None

    async def test_invalid_custom_emoji_id(self, library, child):
        result = await update_child_handler(
            {"child_id": child.id, "custom_emoji_id": "🐶🌈"}, library
        )

        assert result["error"]["status"] == 400
        assert result["error"]["details"][0]["field"] == "custom_emoji_id"

    async def test_regenerate(self, library, child):
        result = await update_child_handler(
            {"child_id": child.id, "regenerate_emoji": True}, library
        )
        assert library.children.allocator.is_valid_format(result["data"]["child"]["emoji_id"])

    async def test_regenerate_and_custom_conflict(self, library, child):
        result = await update_child_handler(
            {"child_id": child.id, "regenerate_emoji": True, "custom_emoji_id": "🦊⭐🍕"},
            library,
        )

        assert result["error"]["status"] == 400
        assert result["error"]["details"][0]["field"] == "__root__"

    async def test_nothing_to_update(self, library, child):
        result = await update_child_handler({"child_id": child.id}, library)

        assert result["error"]["status"] == 400
        assert "Nothing to update" in result["error"]["details"][0]["message"]

    async def test_update_details_only(self, library, child):
        result = await update_child_handler(
            {"child_id": child.id, "grade_or_class": "3C"}, library
        )

        updated = result["data"]["child"]
        assert updated["grade_or_class"] == "3C"
        assert updated["name"] == "Mia"
        assert updated["emoji_id"] == child.emoji_id

    async def test_unknown_child(self, library):
        result = await update_child_handler(
            {"child_id": MISSING_ID, "regenerate_emoji": True}, library
        )
        assert result["error"]["status"] == 404


class TestDeleteChildTool:
    async def test_delete_twice(self, library, child):
        first = await delete_child_handler({"child_id": child.id}, library)
        second = await delete_child_handler({"child_id": child.id}, library)

        assert first["data"]["deleted"] is True
        assert second["data"]["deleted"] is False
        assert "isError" not in second

    async def test_delete_other_org(self, other_library, child):
        result = await delete_child_handler({"child_id": child.id}, other_library)
        assert result["error"]["status"] == 404
