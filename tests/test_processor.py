from __future__ import annotations

import asyncio
from typing import Optional

from core.config import ChannelFilterConfig, DedupConfig, RelayConfig, TransformConfig
from core.dedup import DeduplicationCache
from core.dispatch import DispatchSequencer
from core.processor import ProcessResult, RelayProcessor, is_greeting
from fakes import TARGET, FakeClock, FakeTransport, RecordingSleep, make_message, resolved_channels


def _make_processor(
    transport: FakeTransport,
    clock: Optional[FakeClock] = None,
    multiplier: float = 3,
    sleep=None,
) -> RelayProcessor:
    config = RelayConfig(
        channels=ChannelFilterConfig.build([], ["Avisos"], TARGET.display_name),
        dedup=DedupConfig(window_seconds=10),
        transform=TransformConfig(price_multiplier=multiplier),
    )
    cache = DeduplicationCache(window_seconds=10, clock=clock or FakeClock())
    sequencer = DispatchSequencer(transport, sleep=sleep or RecordingSleep(transport.log))
    return RelayProcessor(config=config, channels=resolved_channels(), cache=cache, sequencer=sequencer)


def test_end_to_end_text_only_message() -> None:
    transport = FakeTransport()
    processor = _make_processor(transport)

    result = asyncio.run(processor.handle(make_message(body="Tênis R$170,00 - Atacado")))

    assert result is ProcessResult.FORWARDED
    assert transport.log == [("sleep", 20.0), ("text", TARGET.id, "Tênis R$510,00")]


def test_self_sent_messages_are_ignored() -> None:
    transport = FakeTransport()
    processor = _make_processor(transport)

    result = asyncio.run(processor.handle(make_message(is_from_self=True)))

    assert result is ProcessResult.IGNORED_SELF
    assert transport.log == []


def test_unmonitored_channel_is_ignored() -> None:
    transport = FakeTransport()
    processor = _make_processor(transport)

    result = asyncio.run(processor.handle(make_message(channel_id=-9999)))

    assert result is ProcessResult.IGNORED_CHANNEL
    assert transport.log == []


def test_greeting_is_ignored() -> None:
    transport = FakeTransport()
    processor = _make_processor(transport)

    result = asyncio.run(processor.handle(make_message(body="BOM DIA pessoal! R$10,00")))

    assert result is ProcessResult.IGNORED_GREETING
    assert transport.log == []
    assert is_greeting("Bom dia", ["bom dia"])
    assert not is_greeting("Boa tarde", ["bom dia"])


def test_duplicate_inside_window_forwards_once() -> None:
    transport = FakeTransport()
    clock = FakeClock()
    processor = _make_processor(transport, clock)

    first = asyncio.run(processor.handle(make_message()))
    clock.advance(5)
    second = asyncio.run(processor.handle(make_message()))

    assert (first, second) == (ProcessResult.FORWARDED, ProcessResult.DUPLICATE)
    assert len(transport.sends) == 1


def test_resend_after_window_forwards_twice() -> None:
    transport = FakeTransport()
    clock = FakeClock()
    processor = _make_processor(transport, clock)

    asyncio.run(processor.handle(make_message()))
    clock.advance(11)
    result = asyncio.run(processor.handle(make_message()))

    assert result is ProcessResult.FORWARDED
    assert len(transport.sends) == 2


def test_fallback_identity_dedupes_identical_text() -> None:
    transport = FakeTransport()
    processor = _make_processor(transport)

    asyncio.run(processor.handle(make_message(message_id=None)))
    result = asyncio.run(processor.handle(make_message(message_id=None)))

    assert result is ProcessResult.DUPLICATE


def test_empty_transform_without_media_sends_nothing_but_is_recorded() -> None:
    transport = FakeTransport()
    processor = _make_processor(transport)

    first = asyncio.run(processor.handle(make_message(body="R$190,00 - Varejo")))
    second = asyncio.run(processor.handle(make_message(body="R$190,00 - Varejo")))

    assert first is ProcessResult.NOTHING_TO_SEND
    assert second is ProcessResult.DUPLICATE
    assert transport.log == []


def test_media_download_failure_still_sends_text() -> None:
    transport = FakeTransport(fail_download=True)
    processor = _make_processor(transport)

    result = asyncio.run(processor.handle(make_message(has_media=True)))

    assert result is ProcessResult.FORWARDED
    assert transport.sends == [("text", TARGET.id, "Tênis R$510,00")]


def test_concurrent_redelivery_is_suppressed() -> None:
    transport = FakeTransport()
    processor = _make_processor(transport)

    async def _both():
        return await asyncio.gather(
            processor.handle(make_message()),
            processor.handle(make_message()),
        )

    results = asyncio.run(_both())

    assert sorted(r.value for r in results) == ["duplicate", "forwarded"]
    assert len(transport.sends) == 1


def test_distinct_messages_interleave() -> None:
    transport = FakeTransport()

    async def _both():
        gate = asyncio.Event()

        async def _sleep(seconds: float) -> None:
            transport.log.append(("sleep", seconds))
            await gate.wait()

        processor = _make_processor(transport, sleep=_sleep)
        first = asyncio.ensure_future(processor.handle(make_message(message_id=1, body="A R$1,00")))
        second = asyncio.ensure_future(processor.handle(make_message(message_id=2, body="B R$2,00")))
        await asyncio.sleep(0)
        # Both passes are parked in their delay at the same time.
        assert [entry[0] for entry in transport.log] == ["sleep", "sleep"]
        gate.set()
        return await asyncio.gather(first, second)

    results = asyncio.run(_both())

    assert all(r is ProcessResult.FORWARDED for r in results)
    assert sorted(entry[2] for entry in transport.sends) == ["A R$3,00", "B R$6,00"]
