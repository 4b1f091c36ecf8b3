"""
Content pointer normalization for the three order types.
"""

from bson import ObjectId

from models.content import (
    LegacyLinkInsertionPostRef,
    PostRef,
    content_id_of,
    content_ref_for,
    normalize_reference_id,
)


class TestNormalizeReferenceId:

    def test_raw_object_id(self):
        oid = ObjectId()
        assert normalize_reference_id(oid) == oid

    def test_hex_string(self):
        oid = ObjectId()
        assert normalize_reference_id(str(oid)) == oid
        assert normalize_reference_id(f"  {oid}  ") == oid

    def test_populated_mapping(self):
        oid = ObjectId()
        assert normalize_reference_id({"_id": oid, "anchorText": "x"}) == oid
        assert normalize_reference_id({"id": str(oid)}) == oid

    def test_malformed_values(self):
        assert normalize_reference_id(None) is None
        assert normalize_reference_id("") is None
        assert normalize_reference_id("not-an-id") is None
        assert normalize_reference_id({"title": "no id"}) is None
        assert normalize_reference_id(42) is None


class TestContentRefFor:

    def test_post_id_wins(self):
        post_id, legacy_id = ObjectId(), ObjectId()
        ref = content_ref_for({"type": "linkInsertion", "post_id": post_id, "link_insertion_id": legacy_id})
        assert ref == PostRef(post_id)

    def test_link_insertion_legacy_pointer(self):
        legacy_id = ObjectId()
        for stored in (legacy_id, str(legacy_id), {"_id": legacy_id}):
            ref = content_ref_for({"type": "linkInsertion", "post_id": None, "link_insertion_id": stored})
            assert ref == LegacyLinkInsertionPostRef(legacy_id)

    def test_legacy_pointer_ignored_for_other_types(self):
        ref = content_ref_for({"type": "guestPost", "link_insertion_id": ObjectId()})
        assert ref is None

    def test_no_pointer(self):
        assert content_ref_for({"type": "writingGuestPost"}) is None

    def test_both_variants_yield_the_same_lookup_id(self):
        oid = ObjectId()
        assert content_id_of(PostRef(oid)) == content_id_of(LegacyLinkInsertionPostRef(oid)) == oid
        assert content_id_of(None) is None
