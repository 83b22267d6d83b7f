import pytest

from cdptap.cdp.models import ConsoleEvent, RequestEvent
from cdptap.errors import InvalidInput
from cdptap.filters import FilterConfig, FilterPipeline


def test_defaults_admit_everything():
    pipeline = FilterPipeline()
    assert pipeline.admits(ConsoleEvent(text="x"))
    assert pipeline.admits(RequestEvent(url="https://anything/"))


def test_block_beats_allow():
    pipeline = FilterPipeline(FilterConfig(url_allowlist=["example.com"], url_blocklist=["ads."]))
    assert not pipeline.admits_url("https://ads.example.com/x")
    assert pipeline.admits_url("https://www.example.com/")
    assert not pipeline.admits_url("https://other.org/")


def test_events_without_url_pass_url_gate():
    pipeline = FilterPipeline(FilterConfig(url_allowlist=["example.com"]))
    assert pipeline.admits(ConsoleEvent(text="no url"))


def test_kind_gate_uses_categories():
    pipeline = FilterPipeline(FilterConfig(kinds=["network"]))
    assert pipeline.admits_category("network")
    assert not pipeline.admits(ConsoleEvent(text="x"))


def test_set_replaces_whole_config():
    pipeline = FilterPipeline(FilterConfig(kinds=["console"], url_blocklist=["a"]))
    pipeline.set(FilterConfig(url_allowlist=["b"]))
    assert pipeline.config.kinds == []
    assert pipeline.config.url_blocklist == []
    assert pipeline.max_body_bytes(64000) == 64000


@pytest.mark.parametrize(
    "kwargs",
    [{"kinds": ["dom"]}, {"max_body_bytes": 0}],
)
def test_invalid_config_rejected(kwargs):
    with pytest.raises(InvalidInput):
        FilterConfig(**kwargs)


def test_from_dict_round_trip_shape():
    config = FilterConfig.from_dict({"kinds": ["log"], "urlBlocklist": ["x"], "maxBodyBytes": 100})
    assert config.to_dict() == {"kinds": ["log"], "urlAllowlist": [], "urlBlocklist": ["x"], "maxBodyBytes": 100}

    with pytest.raises(InvalidInput):
        FilterConfig.from_dict({"urlAllowlist": "example.com"})
