# tests/worker/test_runner.py
"""
Тесты для запускалки воркеров.
"""

from __future__ import annotations

import asyncio
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from society_app.worker.runner import run_workers


@pytest.fixture
def mock_infra() -> Generator[dict[str, Any], None, None]:
    with patch("society_app.worker.runner.init_db", new_callable=AsyncMock) as mock_init_db, \
         patch("society_app.worker.runner.close_db", new_callable=AsyncMock) as mock_close_db, \
         patch("society_app.worker.runner.init_event_bus", new_callable=AsyncMock) as mock_init_event_bus, \
         patch("society_app.worker.runner.close_event_bus", new_callable=AsyncMock) as mock_close_event_bus, \
         patch("society_app.worker.runner.get_db", return_value=MagicMock()):
        yield {
            "init_db": mock_init_db,
            "close_db": mock_close_db,
            "init_event_bus": mock_init_event_bus,
            "close_event_bus": mock_close_event_bus,
        }


@pytest.fixture
def mock_worker() -> Generator[dict[str, Any], None, None]:
    with patch("society_app.worker.runner.NotificationWorker") as MockWorker, \
         patch("society_app.worker.runner.PushForwarder") as MockForwarder:
        worker = MockWorker.return_value
        worker.start = AsyncMock()
        worker.stop = AsyncMock()
        forwarder = MockForwarder.from_settings.return_value
        forwarder.close = AsyncMock()
        yield {"worker": worker, "forwarder": forwarder}


@pytest.mark.asyncio
async def test_run_workers_until_stopped(mock_infra, mock_worker) -> None:
    """Воркер запускается, после stop_event всё закрывается."""
    stop_event = asyncio.Event()
    stop_event.set()

    await run_workers(stop_event=stop_event)

    mock_infra["init_db"].assert_called_once_with(apply_schema=False)
    mock_infra["init_event_bus"].assert_called_once()
    mock_worker["worker"].start.assert_called_once()
    mock_worker["worker"].stop.assert_called_once()
    mock_worker["forwarder"].close.assert_called_once()
    mock_infra["close_event_bus"].assert_called_once()
    mock_infra["close_db"].assert_called_once()


@pytest.mark.asyncio
async def test_run_workers_shared_infra(mock_infra, mock_worker) -> None:
    """В режиме all инфраструктура уже поднята и не закрывается воркерами."""
    stop_event = asyncio.Event()
    stop_event.set()

    await run_workers(init_infra=False, stop_event=stop_event)

    mock_infra["init_db"].assert_not_called()
    mock_infra["close_db"].assert_not_called()
    mock_worker["worker"].stop.assert_called_once()


@pytest.mark.asyncio
async def test_run_workers_cancelled(mock_infra, mock_worker) -> None:
    task = asyncio.create_task(run_workers())
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    mock_worker["worker"].stop.assert_called_once()
    mock_infra["close_db"].assert_called_once()


@pytest.mark.asyncio
async def test_run_workers_start_failure(mock_infra, mock_worker) -> None:
    mock_worker["worker"].start.side_effect = RuntimeError("broker down")

    with pytest.raises(RuntimeError):
        await run_workers(stop_event=asyncio.Event())

    mock_worker["forwarder"].close.assert_called_once()
