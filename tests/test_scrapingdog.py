import httpx
import pytest

from jobrelay.clients import scrapingdog
from jobrelay.errors import ProviderError
from jobrelay.models import Combo, SearchQuery


def _transport(handler):
    return httpx.MockTransport(handler)


def test_build_params_translates_and_drops_blanks():
    query = SearchQuery(
        field="data engineer",
        location="Austin",
        sort_by="week",
        work_type="remote",
        chunk=25,
        extra={"geoid": "ignored-by-explicit", "custom": "x"},
    )
    params = scrapingdog.build_params(query, Combo("full-time", "senior"), page=3)
    assert params == {
        "custom": "x",
        "field": "data engineer",
        "location": "Austin",
        "sort_by": "week",
        "work_type": "2",
        "count": "25",
        "page": "3",
        "job_type": "F",
        "exp_level": "4",
    }


def test_build_params_fallback_has_no_combo_filters():
    params = scrapingdog.build_params(SearchQuery(field="x"), None, page=1)
    assert "job_type" not in params and "exp_level" not in params


def test_search_accepts_array_and_wrapped_bodies():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request.url)
        if request.url.params["page"] == "1":
            return httpx.Response(200, json=[{"job_link": "a"}, "junk"])
        return httpx.Response(200, json={"jobs": [{"job_link": "b"}]})

    t = _transport(handler)
    assert scrapingdog.scrapingdog_search("KEY", {"page": "1"}, transport=t) == [{"job_link": "a"}]
    assert scrapingdog.scrapingdog_search("KEY", {"page": "2"}, transport=t) == [{"job_link": "b"}]
    assert seen[0].params["api_key"] == "KEY"
    assert str(seen[0]).startswith(scrapingdog.BASE_URL)


def test_search_raises_provider_error_with_status_and_body():
    t = _transport(lambda request: httpx.Response(403, text="quota exceeded"))
    with pytest.raises(ProviderError) as info:
        scrapingdog.scrapingdog_search("KEY", {"page": "1"}, transport=t)
    assert info.value.status == 403
    assert info.value.body == "quota exceeded"
    assert "403" in str(info.value)


def test_search_rejects_malformed_body():
    t = _transport(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(ProviderError):
        scrapingdog.scrapingdog_search("KEY", {}, transport=t)


def test_search_requires_key():
    with pytest.raises(ProviderError):
        scrapingdog.scrapingdog_search("", {})


def test_page_fetcher_binds_query(monkeypatch):
    calls = []

    def fake_search(api_key, params, *, timeout=30.0, transport=None):
        calls.append((api_key, params))
        return []

    monkeypatch.setattr(scrapingdog, "scrapingdog_search", fake_search)
    fetch = scrapingdog.page_fetcher("KEY", SearchQuery(field="qa"))
    fetch(Combo("C", None), 2)
    assert calls == [("KEY", {"field": "qa", "count": "10", "page": "2", "job_type": "C"})]
