"""Tests for cache key builders and the TTL policy."""

import uuid
from datetime import date

import pytest

from app.core.config import Settings
from app.domain.enums import DataClass
from app.infrastructure.cache import CachePolicy
from app.infrastructure.cache import keys


class TestKeys:
    def test_query_key_layout(self) -> None:
        key = keys.query_key("mtk", "t1", DataClass.ANIMAL_LIST, {"page": 2})
        prefix, segment, tenant, data_class, digest = key.split(":")
        assert (prefix, segment, tenant, data_class) == ("mtk", "q", "t1", "animal_list")
        assert digest == keys.params_digest({"page": 2})
        assert len(digest) == 64

    def test_canonical_params_sorted_and_compact(self) -> None:
        assert keys.canonical_params({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_none_and_empty_params_share_a_key(self) -> None:
        assert keys.query_key("p", "t1", "x") == keys.query_key("p", "t1", "x", {})

    @pytest.mark.parametrize("params", [[], 0, "", False])
    def test_falsy_params_keep_their_own_key(self, params) -> None:
        assert keys.query_key("p", "t1", "x", params) != keys.query_key("p", "t1", "x", None)

    def test_sets_are_sorted(self) -> None:
        assert keys.canonical_params({"ids": {"e", "a", "c"}}) == '{"ids":["a","c","e"]}'
        assert keys.params_digest({"ids": frozenset({"b", "a"})}) == keys.params_digest({"ids": ["a", "b"]})

    def test_mixed_sets_sort_by_json_form(self) -> None:
        assert keys.canonical_params({1, "1", None}) == '["1",1,null]'

    def test_mixed_type_dict_keys(self) -> None:
        assert keys.canonical_params({1: "a", "b": 2, None: 3}) == '{"1":"a","b":2,"null":3}'

    def test_colliding_dict_keys_rejected(self) -> None:
        with pytest.raises(ValueError, match="ambiguous"):
            keys.canonical_params({1: "a", "1": "b"})

    def test_dates_uuids_and_enums(self) -> None:
        farm = uuid.UUID("12345678-1234-5678-1234-567812345678")
        params = {"day": date(2026, 3, 1), "farm": farm, "kind": DataClass.MILK_STATS}
        assert keys.canonical_params(params) == (
            '{"day":"2026-03-01","farm":"12345678-1234-5678-1234-567812345678","kind":"milk_stats"}'
        )

    @pytest.mark.parametrize("params", [{"x": object()}, {"x": float("nan")}, {"x": b"raw"}])
    def test_unstable_values_rejected(self, params) -> None:
        with pytest.raises(ValueError):
            keys.query_key("p", "t1", "x", params)

    def test_different_params_differ(self) -> None:
        assert keys.query_key("p", "t1", "x", {"a": 1}) != keys.query_key("p", "t1", "x", {"a": 2})

    @pytest.mark.parametrize("data_class", ["", "a:b", "a b", "x*"])
    def test_bad_data_class(self, data_class: str) -> None:
        with pytest.raises(ValueError):
            keys.query_key("p", "t1", data_class)

    def test_tags(self) -> None:
        assert keys.tenant_tag("t1", DataClass.MILK_STATS) == "t1:milk_stats"
        assert keys.tag_key("p", "t1:milk_stats") == "p:tag:t1:milk_stats"
        assert keys.tenant_tag_pattern("p", "t1") == "p:tag:t1:*"
        assert keys.tenant_query_pattern("p", "t1") == "p:q:t1:*"

    def test_empty_tag_rejected(self) -> None:
        with pytest.raises(ValueError):
            keys.tag_key("p", "")


class TestCachePolicy:
    def test_from_settings(self) -> None:
        settings = Settings(
            cache_ttl_list=11,
            cache_ttl_stats=22,
            cache_ttl_dashboard=33,
            cache_ttl_analytics=44,
            cache_ttl_profile=55,
            cache_ttl_default=66,
        )
        policy = CachePolicy.from_settings(settings)
        assert policy.ttl_for(DataClass.ANIMAL_LIST) == 11
        assert policy.ttl_for("milk_stats") == 22
        assert policy.ttl_for(DataClass.HEALTH_RECORDS) == 11
        assert policy.ttl_for(DataClass.DASHBOARD_DATA) == 33
        assert policy.ttl_for(DataClass.ANALYTICS) == 44
        assert policy.ttl_for(DataClass.USER_PROFILE) == 55
        assert policy.ttl_for("custom_report") == 66
        assert set(policy.as_dict()) == {dc.value for dc in DataClass}

    def test_rejects_non_positive_ttls(self) -> None:
        with pytest.raises(ValueError):
            CachePolicy(default_ttl=0)
        with pytest.raises(ValueError):
            CachePolicy({"x": -1})
