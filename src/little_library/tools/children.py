"""
Child reader tools for the Little Library MCP Server.

1. register_child: create a child with a fresh three-emoji ID
2. update_child: regenerate or choose an emoji ID, or edit name and class
3. delete_child: soft-delete a child, freeing their emoji ID
"""

import logging
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..context import LibraryContext
from ..errors import LibraryError
from .responses import failed, invalid_arguments, success_response, unexpected

logger = logging.getLogger(__name__)


class RegisterChildInput(BaseModel):
    """Input schema for the register_child tool. Every field is optional."""

    name: str | None = Field(
        default=None,
        description="Child's name; may be left empty for fully anonymous readers",
        max_length=200,
    )

    grade_or_class: str | None = Field(
        default=None,
        description="Class or grade",
        max_length=100,
        examples=["2B", "Year 3"],
    )


async def register_child_handler(
    arguments: dict[str, Any], library: LibraryContext
) -> dict[str, Any]:
    try:
        params = RegisterChildInput.model_validate(arguments or {})
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid child details")

    try:
        child = library.children.register(
            library.tenant, name=params.name, grade_or_class=params.grade_or_class
        )
    except LibraryError as e:
        return failed(logger, "Registration", e)
    except Exception as e:
        return unexpected(logger, "register_child", e)

    return success_response(
        f"Registered child with emoji ID {child.emoji_id}",
        {"child": child.model_dump(mode="json")},
    )


class UpdateChildInput(BaseModel):
    """
    Input schema for the update_child tool.

    ``regenerate_emoji`` and ``custom_emoji_id`` are mutually exclusive.
    Name and class are only changed when present in the request.
    """

    child_id: UUID = Field(..., description="ID of the child to update")

    regenerate_emoji: bool = Field(
        default=False,
        description="Replace the emoji ID with a new random one",
    )

    custom_emoji_id: str | None = Field(
        default=None,
        description="Exactly three emojis from the library's emoji set",
        min_length=1,
        max_length=64,
        examples=["🐶🌈🎨"],
    )

    name: str | None = Field(default=None, max_length=200)

    grade_or_class: str | None = Field(default=None, max_length=100)

    @model_validator(mode="after")
    def check_changes(self) -> "UpdateChildInput":
        if self.regenerate_emoji and self.custom_emoji_id is not None:
            raise ValueError("Use either regenerate_emoji or custom_emoji_id, not both")
        if not (
            self.regenerate_emoji
            or self.custom_emoji_id is not None
            or self.detail_changes()
        ):
            raise ValueError("Nothing to update")
        return self

    def detail_changes(self) -> dict[str, Any]:
        return {
            field: getattr(self, field)
            for field in ("name", "grade_or_class")
            if field in self.model_fields_set
        }


async def update_child_handler(
    arguments: dict[str, Any], library: LibraryContext
) -> dict[str, Any]:
    """
    Handler for the update_child tool.

    The emoji ID change and the detail edit are applied together: a taken
    custom ID (409) leaves the child untouched.
    """
    try:
        params = UpdateChildInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid child update")

    child_id = str(params.child_id)
    try:
        child = library.children.update(
            child_id,
            library.tenant,
            regenerate_emoji=params.regenerate_emoji,
            custom_emoji_id=params.custom_emoji_id,
            **params.detail_changes(),
        )
    except LibraryError as e:
        return failed(logger, "Child update", e)
    except Exception as e:
        return unexpected(logger, "update_child", e)

    return success_response(
        f"Updated child {child.id} (emoji ID {child.emoji_id})",
        {"child": child.model_dump(mode="json")},
    )


class DeleteChildInput(BaseModel):
    child_id: UUID = Field(..., description="ID of the child to delete")


async def delete_child_handler(
    arguments: dict[str, Any], library: LibraryContext
) -> dict[str, Any]:
    """Soft-delete a child. Deleting an already deleted child succeeds."""
    try:
        params = DeleteChildInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid child delete")

    try:
        deleted = library.children.delete(str(params.child_id), library.tenant)
    except LibraryError as e:
        return failed(logger, "Child delete", e)
    except Exception as e:
        return unexpected(logger, "delete_child", e)

    message = "Child deleted" if deleted else "Child was already deleted"
    return success_response(message, {"child_id": str(params.child_id), "deleted": deleted})


register_child_tool = {
    "name": "register_child",
    "description": "Register a child reader and give them a unique three-emoji ID.",
    "inputSchema": RegisterChildInput.model_json_schema(),
    "handler": register_child_handler,
}

update_child_tool = {
    "name": "update_child",
    "description": (
        "Update a child: regenerate their emoji ID, set a custom one, "
        "or change their name and class."
    ),
    "inputSchema": UpdateChildInput.model_json_schema(),
    "handler": update_child_handler,
}

delete_child_tool = {
    "name": "delete_child",
    "description": "Delete a child reader. Their emoji ID becomes free for reuse.",
    "inputSchema": DeleteChildInput.model_json_schema(),
    "handler": delete_child_handler,
}

children_tools = [register_child_tool, update_child_tool, delete_child_tool]
