from dataclasses import dataclass
from collections.abc import Mapping
from typing import Optional, Union

from bson import ObjectId
from bson.errors import InvalidId

from config.constants import TYPE_LINK_INSERTION


@dataclass(frozen=True)
class PostRef:
    """Content pointer stored on post_id."""
    post_id: ObjectId


@dataclass(frozen=True)
class LegacyLinkInsertionPostRef:
    """
    Content pointer stored on link_insertion_id of a linkInsertion order.
    The value is a post id, not a link-insertion entity id.
    """
    post_id: ObjectId


ContentRef = Union[PostRef, LegacyLinkInsertionPostRef]


def normalize_reference_id(value) -> Optional[ObjectId]:
    """
    Canonicalize a stored reference: raw ObjectId, hex string, or a
    populated mapping carrying `_id` / `id`.
    Returns None for empty or malformed values.
    """
    match value:
        case None | "":
            return None
        case ObjectId():
            return value
        case str():
            try:
                return ObjectId(value.strip())
            except InvalidId:
                return None
        case Mapping():
            return normalize_reference_id(value.get("_id") or value.get("id"))
        case _:
            return None


def content_ref_for(order: dict) -> Optional[ContentRef]:
    post_id = normalize_reference_id(order.get("post_id"))
    if post_id:
        return PostRef(post_id)

    if order.get("type") == TYPE_LINK_INSERTION:
        legacy_id = normalize_reference_id(order.get("link_insertion_id"))
        if legacy_id:
            return LegacyLinkInsertionPostRef(legacy_id)

    return None


def content_id_of(ref: Optional[ContentRef]) -> Optional[ObjectId]:
    match ref:
        case PostRef(post_id=post_id) | LegacyLinkInsertionPostRef(post_id=post_id):
            return post_id
        case None:
            return None
