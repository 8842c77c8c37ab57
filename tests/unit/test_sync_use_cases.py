"""
Tests unitarios para SyncUseCases.

Verifica las validaciones del disparo manual antes de llegar al
coordinador (tabla desconocida, disparo deshabilitado, peticion vacia).
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from tablesync.application.dto.sync_dto import SyncTriggerRequestDTO
from tablesync.application.use_cases.sync_use_cases import SyncUseCases
from tablesync.infrastructure.table_sync.sync_config import DefaultPolicy, TableStatus, TableSyncSpec
from tablesync.shared.exceptions.domain import (
    ManualTriggerDisabledException,
    TableNotFoundException,
    ValidationException,
)


SPECS = {
    "public.users": TableSyncSpec(source_table="dbo.Users", target_table="public.users"),
    "public.locked": TableSyncSpec(source_table="dbo.Locked", target_table="public.locked", manual_trigger=False),
}


@pytest.fixture
def coordinator() -> MagicMock:
    coord = MagicMock()
    coord.defaults = DefaultPolicy()
    coord.get_spec.side_effect = SPECS.get
    coord.trigger_one.return_value = True
    coord.trigger_all.return_value = 2
    coord.status.return_value = [TableStatus.from_spec(s, coord.defaults) for s in SPECS.values()]
    return coord


class TestSyncUseCasesTrigger:
    """Tests para SyncUseCases.trigger()."""

    def test_trigger_known_table(self, coordinator: MagicMock) -> None:
        result = SyncUseCases(coordinator).trigger(SyncTriggerRequestDTO(table_name="public.users"))

        assert result.success is True
        assert "public.users" in result.message
        coordinator.trigger_one.assert_called_once_with("public.users")

    def test_sync_all_takes_precedence(self, coordinator: MagicMock) -> None:
        result = SyncUseCases(coordinator).trigger(SyncTriggerRequestDTO(table_name="public.users", sync_all=True))

        assert result.success is True
        coordinator.trigger_all.assert_called_once()
        coordinator.trigger_one.assert_not_called()

    def test_unknown_table_raises_not_found(self, coordinator: MagicMock) -> None:
        with pytest.raises(TableNotFoundException) as exc_info:
            SyncUseCases(coordinator).trigger(SyncTriggerRequestDTO(table_name="public.nope"))

        assert exc_info.value.status_code == 404
        coordinator.trigger_one.assert_not_called()

    def test_manual_trigger_disabled_raises_forbidden(self, coordinator: MagicMock) -> None:
        with pytest.raises(ManualTriggerDisabledException) as exc_info:
            SyncUseCases(coordinator).trigger(SyncTriggerRequestDTO(table_name="public.locked"))

        assert exc_info.value.status_code == 403
        coordinator.trigger_one.assert_not_called()

    @pytest.mark.parametrize("table_name", [None, "", "   "])
    def test_empty_request_raises_validation_error(self, coordinator: MagicMock, table_name) -> None:
        with pytest.raises(ValidationException) as exc_info:
            SyncUseCases(coordinator).trigger(SyncTriggerRequestDTO(table_name=table_name))

        assert exc_info.value.status_code == 400


class TestSyncUseCasesStatus:
    """Tests para SyncUseCases.get_status()."""

    def test_status_lists_configured_tables(self, coordinator: MagicMock) -> None:
        result = SyncUseCases(coordinator).get_status()

        assert result.status == "running"
        assert [t.target_table for t in result.tables] == ["public.users", "public.locked"]
        assert result.tables[1].manual_trigger is False
