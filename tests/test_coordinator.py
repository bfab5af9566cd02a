"""Tests for session lifecycle and navigation in SessionCoordinator."""

import asyncio

import pytest

from conftest import FakeTabProvider, ssh_tab
from remote_explorer.core.events import (
    DirectoryListingReady,
    DirectoryLoading,
    NavigationError,
    SessionStateChanged,
)
from remote_explorer.explorer.coordinator import SessionCoordinator
from remote_explorer.explorer.state import SessionState, TabInfo
from remote_explorer.settings.manager import SettingsManager
from remote_explorer.utils.exceptions import InvalidPathError, SessionUnavailableError


def make_coordinator(api, tabs, signals, **kwargs) -> SessionCoordinator:
    return SessionCoordinator(api, tabs, signals, **kwargs)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_show_opens_session_at_working_directory(self, api, tabs, signals, recorder) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()

        assert api.count("open_session") == 1
        assert coordinator.state == SessionState.FOREGROUND_ACTIVE
        assert coordinator.current_path == "/home/user"
        ready = recorder.last(DirectoryListingReady)
        assert ready.session_id == "s1"
        assert ready.from_cache is False
        states = [event.state for event in recorder.of_type(SessionStateChanged)]
        assert states[0] == SessionState.SWITCHING
        assert states[-1] == SessionState.FOREGROUND_ACTIVE

    @pytest.mark.asyncio
    async def test_unresolved_working_directory_falls_back_to_dot(self, api, tabs, signals) -> None:
        api.fail("resolve_working_directory", "", "pwd: not found")
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()

        assert coordinator.foreground.working_directory == "."
        assert api.count("list_directory", ".") == 1

    @pytest.mark.asyncio
    async def test_open_failure_shows_placeholder(self, api, tabs, signals, recorder) -> None:
        api.fail("open_session", "", "connection refused")
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()

        assert coordinator.state == SessionState.NO_SESSION
        last = recorder.last(SessionStateChanged)
        assert last.placeholder
        assert "connection refused" in last.message
        assert api.count("list_directory") == 0

    @pytest.mark.asyncio
    async def test_hide_and_show_restores_exact_path(self, api, tabs, signals, recorder) -> None:
        """The parked session comes back at its path, served from the cache."""
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.navigate("/srv")

        await coordinator.panel_became_hidden()
        assert coordinator.state == SessionState.PARKED
        assert coordinator.current_path == ""

        recorder.clear()
        await coordinator.panel_became_visible()

        assert coordinator.current_path == "/srv"
        assert api.count("open_session") == 1
        assert api.count("list_directory", "/srv") == 1
        assert recorder.last(DirectoryListingReady).from_cache is True
        assert recorder.of_type(DirectoryLoading) == []

    @pytest.mark.asyncio
    async def test_restore_lists_when_cache_is_empty(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.panel_became_hidden()
        coordinator.cache.clear("s1")

        await coordinator.panel_became_visible()

        assert coordinator.current_path == "/home/user"
        assert api.count("list_directory", "/home/user") == 2

    @pytest.mark.asyncio
    async def test_tab_switch_parks_previous_session(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()

        await coordinator.active_tab_changed(ssh_tab("tab-2", "s2"))
        assert coordinator.state == SessionState.FOREGROUND_WITH_BACKGROUND
        assert coordinator.foreground.session_id == "s2"
        assert coordinator.background.session_id == "s1"
        assert coordinator.current_path == "/srv"

        await coordinator.active_tab_changed(ssh_tab("tab-1", "s1"))
        assert coordinator.foreground.session_id == "s1"
        assert coordinator.background.session_id == "s2"
        assert coordinator.current_path == "/home/user"
        assert api.count("open_session") == 2
        assert api.count("close_session") == 0

    @pytest.mark.asyncio
    async def test_third_session_evicts_background(self, api, tabs, signals) -> None:
        """At most one session stays parked."""
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.active_tab_changed(ssh_tab("tab-2", "s2"))
        await coordinator.active_tab_changed(ssh_tab("tab-3", "s3"))

        assert [session.session_id for session in coordinator.sessions()] == ["s3", "s2"]
        assert api.calls.count(("close_session", "s1", "")) == 1
        assert ("s1", "/home/user") not in coordinator.cache

    @pytest.mark.asyncio
    async def test_same_tab_is_a_no_op(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.active_tab_changed(ssh_tab())
        assert api.count("open_session") == 1
        assert api.count("list_directory") == 1

    @pytest.mark.asyncio
    async def test_local_tab_tears_everything_down(self, api, tabs, signals, recorder) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.active_tab_changed(ssh_tab("tab-2", "s2"))

        await coordinator.active_tab_changed(TabInfo(tab_id="local"))

        assert coordinator.state == SessionState.NO_SESSION
        assert api.count("close_session") == 2
        assert recorder.last(SessionStateChanged).placeholder

    @pytest.mark.asyncio
    async def test_disconnected_ssh_tab_is_not_browsable(self, api, signals, recorder) -> None:
        coordinator = make_coordinator(api, FakeTabProvider(ssh_tab(status="disconnected")), signals)
        await coordinator.panel_became_visible()

        assert api.count("open_session") == 0
        assert recorder.last(SessionStateChanged).placeholder

    @pytest.mark.asyncio
    async def test_tab_disconnected_drops_its_sessions(self, api, tabs, signals, recorder) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.active_tab_changed(ssh_tab("tab-2", "s2"))

        await coordinator.tab_disconnected(ssh_tab("tab-2", "s2"))

        assert coordinator.foreground is None
        assert coordinator.background.session_id == "s1"
        assert coordinator.state == SessionState.PARKED
        assert recorder.last(SessionStateChanged).placeholder

    @pytest.mark.asyncio
    async def test_force_cleanup(self, api, tabs, signals, recorder) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.active_tab_changed(ssh_tab("tab-2", "s2"))

        await coordinator.force_cleanup()

        assert coordinator.state == SessionState.NO_SESSION
        assert len(coordinator.cache) == 0
        assert api.count("close_session") == 2
        assert recorder.last(SessionStateChanged).placeholder

    @pytest.mark.asyncio
    async def test_tab_change_while_hidden_is_deferred(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.active_tab_changed(ssh_tab("tab-2", "s2"))
        assert api.calls == []

        tabs.active = ssh_tab("tab-2", "s2")
        await coordinator.panel_became_visible()
        assert coordinator.foreground.session_id == "s2"

    @pytest.mark.asyncio
    async def test_concurrent_signals_apply_in_arrival_order(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await asyncio.gather(
            coordinator.panel_became_visible(),
            coordinator.active_tab_changed(ssh_tab("tab-2", "s2")),
        )
        assert coordinator.foreground.session_id == "s2"
        assert coordinator.background.session_id == "s1"


class TestNavigation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["", "   ", None])
    async def test_invalid_path_rejected_before_any_call(self, api, tabs, signals, path) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        calls = len(api.calls)

        with pytest.raises(InvalidPathError):
            await coordinator.navigate(path)
        assert len(api.calls) == calls

    @pytest.mark.asyncio
    async def test_navigate_without_session(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        with pytest.raises(SessionUnavailableError):
            await coordinator.navigate("/srv")

    @pytest.mark.asyncio
    async def test_same_path_is_a_no_op(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.navigate("/home/user/")
        assert api.count("list_directory", "/home/user") == 1

    @pytest.mark.asyncio
    async def test_navigation_always_lists_fresh(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.navigate("/srv")
        await coordinator.navigate("/home/user")
        await coordinator.navigate("/srv")
        assert api.count("list_directory", "/srv") == 2

    @pytest.mark.asyncio
    async def test_listing_carries_breadcrumbs_and_parent_row(self, api, tabs, signals, recorder) -> None:
        api.add_file("/home/user/notes.txt", "hi")
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()

        ready = recorder.last(DirectoryListingReady)
        assert [crumb.path for crumb in ready.breadcrumbs] == ["/", "/home", "/home/user"]
        assert ready.entries[0].is_parent
        assert ready.entries[0].path == "/home"
        assert coordinator.entry_at("/home/user/notes.txt").name == "notes.txt"
        assert coordinator.entry_at("/home") is None

    @pytest.mark.asyncio
    async def test_navigate_up(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.navigate_up()
        assert coordinator.current_path == "/home"

    @pytest.mark.asyncio
    async def test_refresh_relists_current_directory(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        api.add_file("/home/user/new.txt")
        await coordinator.refresh()

        assert api.count("list_directory", "/home/user") == 2
        assert coordinator.entry_at("/home/user/new.txt") is not None

    @pytest.mark.asyncio
    async def test_permission_error_offers_elevation(self, api, tabs, signals, recorder) -> None:
        api.add_dir("/root")
        api.fail("list_directory", "/root", "ls: cannot open directory '/root': Permission denied")
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()

        await coordinator.navigate("/root")

        error = recorder.last(NavigationError)
        assert error.path == "/root"
        assert error.retryable_with_elevation
        # No fallback for permission failures: the elevation offer stays visible.
        assert api.count("list_directory", "/home/user") == 1

    @pytest.mark.asyncio
    async def test_retry_elevated_lists_with_privileges(self, api, tabs, signals) -> None:
        api.add_dir("/root")
        api.fail("list_directory", "/root", "Permission denied")
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.navigate("/root")

        assert await coordinator.retry_elevated() is True
        assert coordinator.current_path == "/root"
        assert api.count("list_directory_elevated", "/root") == 1

    @pytest.mark.asyncio
    async def test_retry_elevated_needs_a_permission_failure(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        assert await coordinator.retry_elevated() is False
        assert api.count("list_directory_elevated") == 0

    @pytest.mark.asyncio
    async def test_elevated_failure_is_terminal(self, api, tabs, signals, recorder) -> None:
        api.add_dir("/root")
        api.fail("list_directory", "/root", "Permission denied")
        api.fail("list_directory_elevated", "/root", "sudo: a password is required")
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.navigate("/root")

        assert await coordinator.retry_elevated() is False
        assert not recorder.last(NavigationError).retryable_with_elevation
        assert await coordinator.retry_elevated() is False
        assert api.count("list_directory_elevated", "/root") == 1

    @pytest.mark.asyncio
    async def test_missing_directory_falls_back_to_working_directory(
        self, api, tabs, signals, recorder
    ) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.navigate("/srv")

        await coordinator.navigate("/gone")

        assert coordinator.current_path == "/home/user"
        assert recorder.of_type(NavigationError) == []

    @pytest.mark.asyncio
    async def test_fallback_can_be_disabled(self, api, tabs, signals, recorder, tmp_path) -> None:
        settings = SettingsManager(tmp_path / "settings.json")
        settings.set("fallback_to_working_directory", False, save_immediately=False)
        coordinator = make_coordinator(api, tabs, signals, settings=settings)
        await coordinator.panel_became_visible()

        await coordinator.navigate("/gone")

        error = recorder.last(NavigationError)
        assert error.path == "/gone"
        assert not error.retryable_with_elevation
        assert coordinator.current_path == "/home/user"

        api.add_dir("/gone")
        assert await coordinator.retry() is True
        assert coordinator.current_path == "/gone"

    @pytest.mark.asyncio
    async def test_reload_ignores_directories_not_on_screen(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        assert await coordinator.reload_if_displayed("s1", "/srv") is False
        assert await coordinator.reload_if_displayed("s2", "/home/user") is False
        assert await coordinator.reload_if_displayed("s1", "/home/user") is True
        assert api.count("list_directory", "/home/user") == 2


class TestTransferRefresh:
    @pytest.mark.asyncio
    async def test_upload_batch_complete_relists(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()

        await coordinator.handle_transfer_event(
            "s1", {"phase": "batch-start", "direction": "upload", "totalFiles": 1}
        )
        progress = await coordinator.handle_transfer_event(
            "s1", {"phase": "batch-complete", "direction": "upload"}
        )

        assert progress.refresh_needed
        assert api.count("list_directory", "/home/user") == 2

    @pytest.mark.asyncio
    async def test_download_does_not_relist(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()
        await coordinator.handle_transfer_event("s1", {"phase": "complete", "direction": "download"})
        assert api.count("list_directory", "/home/user") == 1

    @pytest.mark.asyncio
    async def test_dispatch_runs_refresh_in_background(self, api, tabs, signals) -> None:
        coordinator = make_coordinator(api, tabs, signals)
        await coordinator.panel_became_visible()

        coordinator.dispatch_transfer_event("s1", {"phase": "complete", "direction": "upload"})
        await coordinator.wait_for_background_tasks()

        assert api.count("list_directory", "/home/user") == 2
