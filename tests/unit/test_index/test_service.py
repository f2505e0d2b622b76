"""Tests for IndexService — the single-worker event queue."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from packdex.index.addon_index import AddonIndex
from packdex.index.schema import IndexSnapshot, Kind, ScanResult
from packdex.index.service import FileChanged, FileDeleted, IndexService, ScanRequest


class TestLifecycle:
    def test_submit_before_start_raises(self) -> None:
        service = IndexService()
        with pytest.raises(RuntimeError):
            service.submit(ScanRequest(("/nowhere",)))

    def test_start_stop(self) -> None:
        async def _run() -> tuple[bool, bool]:
            service = IndexService()
            await service.start()
            running = service.running
            await service.stop()
            return running, service.running

        assert asyncio.run(_run()) == (True, False)

    def test_stop_drains_queued_events(self, workspace: Path) -> None:
        async def _run() -> list[IndexSnapshot]:
            service = IndexService()
            seen: list[IndexSnapshot] = []
            service.on_update(seen.append)
            await service.start()
            service.submit(ScanRequest((str(workspace),)))
            await service.stop()
            return seen

        assert len(asyncio.run(_run())) == 1


class TestEvents:
    def test_scan_returns_result(self, workspace: Path) -> None:
        async def _run() -> ScanResult:
            service = IndexService()
            await service.start()
            try:
                return await service.scan([workspace])
            finally:
                await service.stop()

        result = asyncio.run(_run())
        assert result.indexed == 17

    def test_events_applied_in_order(self, workspace: Path, rp: Path, write) -> None:
        fog = rp / "fogs" / "mist.json"

        async def _run(service: IndexService) -> None:
            await service.start()
            try:
                await service.scan([workspace])
                write(fog, {"minecraft:fog_settings": {"description": {"identifier": "demo:fog2"}}})
                changed = service.apply_create_or_change(fog)
                deleted = service.apply_delete(fog, Kind.FOG)
                record, removed = await asyncio.gather(changed, deleted)
                assert record is not None and record.identifiers == ("demo:fog2",)
                assert removed is True
            finally:
                await service.stop()

        service = IndexService(AddonIndex())
        asyncio.run(_run(service))
        structure = service.get_structure()
        assert structure.get(Kind.FOG, "demo:fog2") == []
        assert structure.get(Kind.FOG, "demo:mist") == []

    def test_file_event_after_scans_is_applied(self, workspace: Path, rp: Path) -> None:
        async def _run(service: IndexService):
            await service.start()
            try:
                first = service.submit(ScanRequest((str(workspace),)))
                second = service.submit(ScanRequest((str(workspace),)))
                change = service.submit(FileChanged(str(rp / "fogs" / "mist.json")))
                return await asyncio.gather(first, second, change)
            finally:
                await service.stop()

        service = IndexService()
        first, second, change = asyncio.run(_run(service))
        assert first.indexed == second.indexed == 17
        assert change is not None  # applied after both scans finished

    def test_file_event_before_scan_is_superseded(self, workspace: Path, rp: Path) -> None:
        async def _run(service: IndexService):
            await service.start()
            try:
                blocker = service.submit(ScanRequest((str(workspace),)))
                change = service.submit(FileChanged(str(rp / "fogs" / "mist.json")))
                rescan = service.submit(ScanRequest((str(workspace),)))
                return await asyncio.gather(blocker, change, rescan)
            finally:
                await service.stop()

        service = IndexService()
        _, change, rescan = asyncio.run(_run(service))
        assert change is None
        assert rescan.indexed == 17

    def test_notify_is_fire_and_forget(self, workspace: Path, rp: Path) -> None:
        fog = rp / "fogs" / "mist.json"

        async def _run(service: IndexService) -> None:
            await service.start()
            await service.scan([workspace])
            fog.unlink()
            service.notify_deleted(fog)
            service.notify_changed(rp / "fogs" / "missing.json")
            await service.stop()

        service = IndexService()
        asyncio.run(_run(service))
        assert service.get_structure().get(Kind.FOG, "demo:mist") == []

    def test_failure_is_reported_and_worker_survives(self, workspace: Path) -> None:
        class _Broken(AddonIndex):
            def apply_delete(self, path, kind=None):
                raise OSError("disk gone")

        async def _run(service: IndexService):
            await service.start()
            try:
                with pytest.raises(OSError):
                    await service.submit(FileDeleted("/x.json"))
                return await service.scan([workspace])
            finally:
                await service.stop()

        result = asyncio.run(_run(IndexService(_Broken())))
        assert result.indexed == 17


class TestQueries:
    def test_queries_delegate(self, workspace: Path, rp: Path) -> None:
        index = AddonIndex()
        index.scan([workspace])
        service = IndexService(index)
        assert service.index is index
        assert service.get_file_kind(rp / "fogs" / "mist.json") is Kind.FOG
        assert len(service.get_used_by(Kind.MODEL, "geometry.cow")) == 1
        assert Kind.MODEL in service.get_uses_of(rp / "entity" / "cow.entity.json")
