"""
Pattern Monitor Test Suite - Bundle Aggregator Tests
"""

from pattern_monitor.core.bundle import build_master_bundle
from pattern_monitor.core.field_encoder import encode_json_fields
from pattern_monitor.core.serializer import serialise_vector
from pattern_monitor.core.ternary_hdv import TernaryHDV

D = 1024


def _atom(name: str) -> TernaryHDV:
    return TernaryHDV.from_seed(name.encode(), D)


class TestBuildMasterBundle:
    def test_empty_map_returns_none(self):
        assert build_master_bundle({}) is None

    def test_single_vector_is_itself(self):
        a = _atom("a")
        assert build_master_bundle({0: a}) == a

    def test_fold_in_ascending_id_order(self):
        a, b, c = _atom("a"), _atom("b"), _atom("c")
        expected = a.bundle(b).bundle(c)
        assert build_master_bundle({2: c, 0: a, 1: b}) == expected

    def test_insertion_order_does_not_matter(self):
        a, b, c = _atom("a"), _atom("b"), _atom("c")
        forward = build_master_bundle({0: a, 1: b, 2: c})
        backward = build_master_bundle({2: c, 1: b, 0: a})
        assert forward == backward

    def test_fold_is_order_sensitive(self):
        # Bundling is not associative, so the fixed order is what makes it reproducible
        a, b, c = _atom("a"), _atom("b"), _atom("c")
        assert a.bundle(b).bundle(c) != a.bundle(b.bundle(c))

    def test_similar_to_members(self):
        a, b = _atom("a"), _atom("b")
        master = build_master_bundle({0: a, 1: b})
        assert master.cosine_similarity(a) > 0.5
        assert master.cosine_similarity(b) > 0.5

    def test_reproducible_for_identical_messages(self, encoding_config):
        body = b'{"event":"earthquake","magnitude":6.2,"location":"Pacific Ocean","depth_km":35}'
        first = build_master_bundle(encode_json_fields(body, encoding_config).id_to_vec)
        second = build_master_bundle(encode_json_fields(body, encoding_config).id_to_vec)
        assert serialise_vector(first) == serialise_vector(second)
