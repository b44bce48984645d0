import asyncio

import pytest

from geocode_aggregator.aggregator import Aggregator
from geocode_aggregator.errors import (
    InvalidQueryError,
    InvalidServerResponse,
    ProviderTimeoutError,
    UnknownProviderError,
)
from geocode_aggregator.models import (
    Address,
    BatchQuery,
    GeocodeQuery,
    ResultSet,
    ReverseQuery,
    SuggestQuery,
)

from conftest import FakeProvider, make_address


# ==========================================================================
# Registry
# ==========================================================================

def test_register_provider_is_chainable():
    a, b = FakeProvider("A"), FakeProvider("B")

    aggregator = Aggregator().register_provider(a).register_provider(b)

    assert aggregator.providers == (a, b)
    assert "A" in aggregator
    assert len(aggregator) == 2


@pytest.mark.asyncio
async def test_duplicate_name_last_registration_wins():
    first = FakeProvider("A", default=make_address("A", text="first"))
    second = FakeProvider("A", default=make_address("A", text="second"))
    other = FakeProvider("B")

    aggregator = Aggregator([first, other]).register_provider(second)

    assert aggregator.get_provider("A") is second
    assert aggregator.provider_names == ["A", "B"]

    address = await aggregator.geocode(GeocodeQuery("Moscow"), provider="A")
    assert address.formatted_address == "second"
    assert first.calls == []


def test_unknown_provider_lookup():
    with pytest.raises(UnknownProviderError) as excinfo:
        Aggregator([FakeProvider("A")]).get_provider("B")

    assert excinfo.value.provider == "B"
    assert excinfo.value.available == ["A"]


# ==========================================================================
# geocode / reverse (short-circuit)
# ==========================================================================

@pytest.mark.asyncio
async def test_geocode_returns_first_non_empty_in_registration_order():
    a = FakeProvider("A", default=None)
    b = FakeProvider("B", default=make_address("B", lat=55.7, lon=37.6))
    c = FakeProvider("C", default=make_address("C"))

    address = await Aggregator([a, b, c]).geocode(GeocodeQuery("Moscow"))

    assert address.provided_by == "B"
    assert (address.latitude, address.longitude) == (55.7, 37.6)
    assert c.calls == []


@pytest.mark.asyncio
async def test_geocode_treats_missing_latitude_as_absent():
    a = FakeProvider("A", default=make_address("A", lat=None, text="Moscow"))
    b = FakeProvider("B", default=make_address("B"))

    assert (await Aggregator([a, b]).geocode(GeocodeQuery("Moscow"))).provided_by == "B"
    assert await Aggregator([a]).reverse(ReverseQuery.from_coordinates(1, 2)) is None


@pytest.mark.asyncio
async def test_batch_drops_addresses_without_latitude():
    a = FakeProvider("A", default=make_address("A", lat=None, text="Moscow"))
    b = FakeProvider("B", default=make_address("B"))
    batch = BatchQuery.of(GeocodeQuery("Moscow"), ReverseQuery.from_coordinates(1, 2))

    result = await Aggregator([a, b]).batch(batch)

    assert [address.provided_by for address in result] == ["B", "B"]
    assert result.errors == ()
    assert list(await Aggregator([a]).batch(batch, provider="A")) == []


@pytest.mark.asyncio
async def test_geocode_with_no_results_is_none():
    aggregator = Aggregator([FakeProvider("A"), FakeProvider("B")])

    assert await aggregator.geocode(GeocodeQuery("Atlantis")) is None
    assert await Aggregator().geocode(GeocodeQuery("Atlantis")) is None


@pytest.mark.asyncio
async def test_pinned_geocode_uses_only_that_provider():
    a = FakeProvider("A", default=make_address("A"))
    b = FakeProvider("B", default=make_address("B"))

    address = await Aggregator([a, b]).geocode(GeocodeQuery("Moscow"), provider="B")

    assert address.provided_by == "B"
    assert a.calls == []


@pytest.mark.asyncio
async def test_pinned_unknown_provider_raises():
    with pytest.raises(UnknownProviderError):
        await Aggregator([FakeProvider("A")]).reverse(ReverseQuery.from_coordinates(1, 2), provider="Z")


@pytest.mark.asyncio
async def test_empty_provider_name_is_not_a_fan_out():
    a = FakeProvider("A", default=make_address("A"), suggestions=["Moscow"])
    aggregator = Aggregator([a])

    with pytest.raises(UnknownProviderError):
        await aggregator.geocode(GeocodeQuery("Moscow"), provider="")
    with pytest.raises(UnknownProviderError):
        await aggregator.suggest(SuggestQuery("Mos"), provider="")
    with pytest.raises(UnknownProviderError):
        await aggregator.batch(BatchQuery.of(GeocodeQuery("Moscow")), provider="")
    assert a.calls == []


@pytest.mark.asyncio
async def test_single_query_errors_propagate():
    a = FakeProvider("A", fail_all=True)
    b = FakeProvider("B", default=make_address("B"))

    with pytest.raises(InvalidServerResponse) as excinfo:
        await Aggregator([a, b]).geocode(GeocodeQuery("Moscow"))

    assert excinfo.value.provider == "A"
    assert excinfo.value.query == "Moscow"


@pytest.mark.asyncio
async def test_single_query_timeout_raises_provider_timeout():
    slow = FakeProvider("Slow", default=make_address("Slow"), delay=1.0)

    with pytest.raises(ProviderTimeoutError) as excinfo:
        await Aggregator([slow], timeout=0.05).geocode(GeocodeQuery("Moscow"))

    assert excinfo.value.provider == "Slow"
    assert isinstance(excinfo.value, InvalidServerResponse)


@pytest.mark.asyncio
async def test_wrong_query_kind_is_rejected():
    aggregator = Aggregator([FakeProvider("A")])

    with pytest.raises(InvalidQueryError):
        await aggregator.geocode(SuggestQuery("Moscow"))
    with pytest.raises(InvalidQueryError):
        await aggregator.batch([GeocodeQuery("Moscow")])


# ==========================================================================
# suggest (fan-out)
# ==========================================================================

@pytest.mark.asyncio
async def test_suggest_concatenates_in_registration_order():
    a = FakeProvider("A", suggestions=["Moscow, Tverskaya 1"])
    b = FakeProvider("B", suggestions=["Moscow, Red Square"])

    result = await Aggregator([a, b]).suggest(SuggestQuery("Moscow"))

    assert list(result) == ["Moscow, Tverskaya 1", "Moscow, Red Square"]
    assert result.errors == ()


@pytest.mark.asyncio
async def test_suggest_keeps_duplicates():
    a = FakeProvider("A", suggestions=["Moscow"])
    b = FakeProvider("B", suggestions=["Moscow"])

    result = await Aggregator([a, b]).suggest(SuggestQuery("Mosc"))

    assert list(result) == ["Moscow", "Moscow"]
    assert list(result.unique()) == ["Moscow"]


@pytest.mark.asyncio
async def test_suggest_order_does_not_depend_on_completion_order():
    slow = FakeProvider("Slow", suggestions=["slow"], delay=0.05)
    fast = FakeProvider("Fast", suggestions=["fast"])

    result = await Aggregator([slow, fast]).suggest(SuggestQuery("x"))

    assert list(result) == ["slow", "fast"]


@pytest.mark.asyncio
async def test_suggest_isolates_failing_provider():
    a = FakeProvider("A", fail_all=True)
    b = FakeProvider("B", suggestions=["Kazan"])

    result = await Aggregator([a, b]).suggest(SuggestQuery("Kaz"))

    assert list(result) == ["Kazan"]
    assert [(e.provider, e.query_text) for e in result.errors] == [("A", "Kaz")]


@pytest.mark.asyncio
async def test_pinned_suggest_propagates_errors():
    with pytest.raises(InvalidServerResponse):
        await Aggregator([FakeProvider("A", fail_all=True)]).suggest(SuggestQuery("Kaz"), provider="A")


@pytest.mark.asyncio
async def test_pinned_suggest_returns_only_that_provider():
    a = FakeProvider("A", suggestions=["a"])
    b = FakeProvider("B", suggestions=["b"])

    result = await Aggregator([a, b]).suggest(SuggestQuery("x"), provider="B")

    assert list(result) == ["b"]
    assert a.calls == []


# ==========================================================================
# batch (fan-out)
# ==========================================================================

@pytest.mark.asyncio
async def test_empty_batch_returns_empty_without_calling_providers():
    a = FakeProvider("A", default=make_address("A"))

    assert list(await Aggregator([a]).batch(BatchQuery())) == []
    assert list(await Aggregator([a]).batch(BatchQuery(), provider="A")) == []
    assert list(await Aggregator().batch(BatchQuery())) == []
    assert a.calls == []


@pytest.mark.asyncio
async def test_batch_concatenates_registry_then_batch_order():
    a = FakeProvider("A", results={
        "Moscow": make_address("A", text="A-Moscow"),
        "Kazan": make_address("A", text="A-Kazan"),
    })
    b = FakeProvider("B", results={"Kazan": make_address("B", text="B-Kazan")})
    batch = BatchQuery.of(GeocodeQuery("Moscow"), GeocodeQuery("Kazan"))

    result = await Aggregator([a, b]).batch(batch)

    assert [address.formatted_address for address in result] == ["A-Moscow", "A-Kazan", "B-Kazan"]


@pytest.mark.asyncio
async def test_batch_of_unsupported_kinds_is_empty_without_errors():
    a = FakeProvider("A", suggestions=["Moscow"])

    result = await Aggregator([a]).batch(BatchQuery.of(SuggestQuery("Mosc")))

    assert list(result) == []
    assert result.errors == ()
    assert a.calls == []


@pytest.mark.asyncio
async def test_batch_reports_exactly_one_error_for_failing_query():
    a = FakeProvider("A", default=make_address("A"), fail_on=("Broken",))
    b = FakeProvider("B", default=make_address("B"))
    batch = BatchQuery.of(
        GeocodeQuery("Moscow"),
        GeocodeQuery("Broken"),
        ReverseQuery.from_coordinates(55.7, 37.6),
    )

    result = await Aggregator([a, b]).batch(batch)

    assert [address.provided_by for address in result] == ["A", "A", "B", "B", "B"]
    assert len(result.errors) == 1
    assert result.errors[0].provider == "A"
    assert result.errors[0].query_text == "Broken"


@pytest.mark.asyncio
async def test_batch_slow_provider_times_out_without_blocking_others():
    slow = FakeProvider("Slow", default=make_address("Slow"), delay=1.0)
    fast = FakeProvider("Fast", default=make_address("Fast"))

    result = await Aggregator([slow, fast], timeout=0.05).batch(BatchQuery.of(GeocodeQuery("Moscow")))

    assert [address.provided_by for address in result] == ["Fast"]
    assert len(result.errors) == 1
    assert result.errors[0].provider == "Slow"
    assert "timed out" in result.errors[0].message
    assert slow.cancelled


@pytest.mark.asyncio
async def test_per_call_timeout_overrides_default():
    slow = FakeProvider("Slow", default=make_address("Slow"), delay=0.2)
    aggregator = Aggregator([slow], timeout=0.01)

    result = await aggregator.batch(BatchQuery.of(GeocodeQuery("Moscow")), timeout=2.0)

    assert len(result) == 1


@pytest.mark.asyncio
async def test_pinned_batch_delegates_whole_batch():
    a = FakeProvider("A", default=make_address("A"))
    b = FakeProvider("B", default=make_address("B"))
    batch = BatchQuery.of(GeocodeQuery("Moscow"), GeocodeQuery("Kazan"))

    result = await Aggregator([a, b]).batch(batch, provider="B")

    assert [address.provided_by for address in result] == ["B", "B"]
    assert a.calls == []


@pytest.mark.asyncio
async def test_fan_out_calls_providers_concurrently():
    tracker = {"active": 0, "peak": 0}
    providers = [
        FakeProvider(name, suggestions=[name], delay=0.05, tracker=tracker)
        for name in ("A", "B", "C")
    ]

    await Aggregator(providers).suggest(SuggestQuery("x"))

    assert tracker["peak"] == 3


@pytest.mark.asyncio
async def test_cancelling_aggregate_request_cancels_provider_calls():
    providers = [FakeProvider(name, suggestions=[name], delay=5.0) for name in ("A", "B")]
    aggregator = Aggregator(providers, timeout=10.0)

    task = asyncio.create_task(aggregator.suggest(SuggestQuery("x")))
    await asyncio.sleep(0.05)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert all(provider.cancelled for provider in providers)


@pytest.mark.asyncio
async def test_results_are_result_sets():
    a = FakeProvider("A", default=make_address("A"), suggestions=["a"])
    aggregator = Aggregator([a])

    assert isinstance(await aggregator.suggest(SuggestQuery("x")), ResultSet)
    assert isinstance(await aggregator.batch(BatchQuery.of(GeocodeQuery("x"))), ResultSet)
    assert isinstance((await aggregator.batch(BatchQuery.of(GeocodeQuery("x"))))[0], Address)
