"""Unit tests for the run controller."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from llms_export.content.models import Item
from llms_export.content.source import StaticContentSource
from llms_export.controller.models import ItemCounts, LastItem, StepResponse
from llms_export.errors import GenerationError, NoItemsConfiguredError
from llms_export.progress.models import RunStatus
from llms_export.settings.app import AppSettings
from llms_export.settings.export import ExportSettings
from llms_export.store.store import StateStore
from tests.helpers.content import FakeUploader, make_item
from tests.helpers.controller import make_controller, make_settings
from tests.helpers.time import FIXED_NOW, FrozenClock


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir: Path) -> AppSettings:
    """Create settings rooted in the temporary directory."""
    return make_settings(temp_dir)


@pytest.fixture
def store(settings: AppSettings) -> Generator[StateStore]:
    """Create a connected state store."""
    with StateStore(settings.state_path, clock=FrozenClock()) as store:
        yield store


class BrokenSource(StaticContentSource):
    """Source whose enumeration always fails."""

    def enumerate(self, item_type: str, max_items: int) -> list[Item]:
        raise RuntimeError("database unavailable")


class UnpublishingSource(StaticContentSource):
    """Source whose items turn into drafts once enumerated."""

    def get_item(self, item_type: str, item_id: int) -> Item | None:
        item = super().get_item(item_type, item_id)
        return item.model_copy(update={"status": "draft"}) if item else None


class TestStepResponse:
    """Tests for the polling response model."""

    def test_to_dict_contract(self) -> None:
        """Test the serialized shape of a response."""
        response = StepResponse(
            finished=False,
            items=ItemCounts(parsed=1, total=3),
            last=LastItem(type="post", id=7, title="Hello"),
        )

        assert response.to_dict() == {
            "finished": False,
            "items": {"parsed": 1, "total": 3},
            "last": {"type": "post", "id": 7, "title": "Hello"},
        }

    def test_idle(self) -> None:
        """Test an idle response is finished without an item."""
        assert StepResponse.idle().to_dict() == {
            "finished": True,
            "items": {"parsed": 0, "total": 0},
            "last": None,
        }


class TestStart:
    """Tests for starting runs."""

    def test_no_types_rejected_before_state(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test starting with no types raises and creates no run."""
        controller = make_controller(
            settings, store, [], FakeUploader(), export=ExportSettings(post_types=[])
        )

        with pytest.raises(NoItemsConfiguredError):
            controller.step(start=True)

        assert controller.progress.get_state() is None

    def test_enumeration_failure_aborts(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test a failing source leaves the run in error."""
        controller = make_controller(
            settings, store, [], FakeUploader(), source=BrokenSource([])
        )

        with pytest.raises(GenerationError) as exc_info:
            controller.step(start=True)

        assert "database unavailable" in str(exc_info.value)
        assert isinstance(exc_info.value.cause, RuntimeError)
        state = controller.progress.get_state()
        assert state is not None
        assert state.status == RunStatus.ERROR
        assert state.errors[-1].kind == "generation_error"

    def test_step_after_error_is_idle(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test polling an aborted run changes nothing."""
        controller = make_controller(
            settings, store, [], FakeUploader(), source=BrokenSource([])
        )
        with pytest.raises(GenerationError):
            controller.step(start=True)

        response = controller.step()

        assert response.finished is True
        assert response.last is None

    def test_start_processes_first_item(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test the starting step already handles one entry."""
        uploader = FakeUploader()
        controller = make_controller(
            settings, store, [make_item(1), make_item(2)], uploader
        )

        response = controller.step(start=True)

        assert response.finished is False
        assert response.items == ItemCounts(parsed=1, total=2)
        assert response.last == LastItem(type="post", id=2, title="Item 2")
        assert uploader.filenames == ["post_2_item-2.md"]

    def test_step_without_run_is_idle(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test polling with no run returns an idle response."""
        controller = make_controller(settings, store, [make_item(1)], FakeUploader())

        assert controller.step() == StepResponse.idle()


class TestItemFailures:
    """Tests for per-item failures."""

    def test_unpublished_item_not_found(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test an item unpublished after enumeration is recorded as missing."""
        uploader = FakeUploader()
        controller = make_controller(
            settings, store, [], uploader, source=UnpublishingSource([make_item(1)])
        )

        response = controller.step(start=True)

        assert response.items.parsed == 1
        assert uploader.calls == []
        state = controller.progress.get_state()
        assert state is not None
        assert state.item_errors[0].message.startswith("ITEM_NOT_FOUND")

    def test_failure_threshold_aborts(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test the run stops once too many items failed."""
        strict = make_settings(Path(settings.state_path).parent, max_item_failures=1)
        uploader = FakeUploader(failing={"post_2_item-2.md"})
        controller = make_controller(
            strict, store, [make_item(1), make_item(2)], uploader
        )

        with pytest.raises(GenerationError, match="1 failed items"):
            controller.step(start=True)

        state = controller.progress.get_state()
        assert state is not None
        assert state.status == RunStatus.ERROR


class TestFinalize:
    """Tests for manifest generation."""

    def test_generation_status_after_run(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test the last generation is reported after a run."""
        controller = make_controller(
            settings, store, [make_item(1), make_item(2)], FakeUploader()
        )

        controller.run()
        status = controller.get_generation_status()

        assert status.file_exists is True
        assert status.items == 2
        assert status.last_generated == FIXED_NOW
        assert status.file_size == settings.manifest_path.stat().st_size

    def test_generation_status_never(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test the status before any run."""
        controller = make_controller(settings, store, [], FakeUploader())

        status = controller.get_generation_status()

        assert status.last_generated is None
        assert status.file_exists is False

    def test_delete_manifest(self, settings: AppSettings, store: StateStore) -> None:
        """Test deleting removes the file and the history."""
        controller = make_controller(settings, store, [make_item(1)], FakeUploader())
        controller.run()

        assert controller.delete_manifest() is True
        assert not settings.manifest_path.exists()
        assert controller.get_generation_status().last_generated is None
        assert controller.delete_manifest() is False


class TestRefreshItem:
    """Tests for out-of-run refreshes."""

    def test_refresh_uploads_changed_item(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test a changed item is uploaded outside a run."""
        uploader = FakeUploader()
        item = make_item(1)
        controller = make_controller(settings, store, [item], uploader)

        result = controller.refresh_item("post", 1)

        assert result is not None
        assert result.is_success
        assert uploader.filenames == ["post_1_item-1.md"]

    def test_refresh_unchanged_reuses(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test an unchanged item is not uploaded again."""
        uploader = FakeUploader()
        controller = make_controller(settings, store, [make_item(1)], uploader)
        controller.refresh_item("post", 1)

        result = controller.refresh_item("post", 1)

        assert result is not None
        assert result.reused is True
        assert len(uploader.calls) == 1

    def test_refresh_skipped_when_disabled(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test auto update off skips refreshes."""
        export = ExportSettings(post_types=["post"], auto_update=False)
        controller = make_controller(
            settings, store, [make_item(1)], FakeUploader(), export=export
        )

        assert controller.refresh_item("post", 1) is None

    def test_refresh_skipped_for_other_types(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test types outside the export are ignored."""
        controller = make_controller(
            settings, store, [make_item(1, item_type="page")], FakeUploader()
        )

        assert controller.refresh_item("page", 1) is None

    def test_refresh_skipped_during_run(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test no refresh happens while a run is active."""
        uploader = FakeUploader()
        controller = make_controller(
            settings, store, [make_item(1), make_item(2)], uploader
        )
        controller.step(start=True)

        assert controller.refresh_item("post", 1) is None
        assert len(uploader.calls) == 1

    @pytest.mark.parametrize(
        "kwargs", [{"status": "draft"}, {"noindex": True}, {"password_protected": True}]
    )
    def test_refresh_skipped_for_unexportable(
        self, settings: AppSettings, store: StateStore, kwargs: dict[str, object]
    ) -> None:
        """Test drafts and excluded items are never refreshed."""
        controller = make_controller(
            settings, store, [make_item(1, **kwargs)], FakeUploader()
        )

        assert controller.refresh_item("post", 1) is None

    def test_refresh_missing_item(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test an unknown item is skipped."""
        controller = make_controller(settings, store, [], FakeUploader())

        assert controller.refresh_item("post", 99) is None


class TestReset:
    """Tests for reset."""

    def test_reset_clears_run_and_records(
        self, settings: AppSettings, store: StateStore
    ) -> None:
        """Test reset drops the run and every artifact record."""
        controller = make_controller(
            settings, store, [make_item(1), make_item(2)], FakeUploader()
        )
        controller.step(start=True)

        deleted = controller.reset()

        assert deleted == 1
        assert controller.progress.get_state() is None
        assert store.get_artifact_record(2) is None
