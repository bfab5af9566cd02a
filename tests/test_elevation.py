"""Tests for permission classification and elevated retries."""

import pytest

from remote_explorer.explorer.elevation import PermissionElevationPolicy
from remote_explorer.utils.exceptions import (
    ElevatedOperationError,
    ElevationDeclinedError,
    RemoteOperationError,
)


class TestIsPermissionError:
    @pytest.mark.parametrize(
        "message",
        [
            "Permission denied",
            "cannot create directory: access is denied",
            "rm: cannot remove 'x': Operation not permitted",
            "Read-only file system",
            "failed to create file",
        ],
    )
    def test_permission_messages(self, message: str) -> None:
        assert PermissionElevationPolicy.is_permission_error(message)

    @pytest.mark.parametrize("message", ["connection reset by peer", "No such file or directory", ""])
    def test_other_messages(self, message: str) -> None:
        assert not PermissionElevationPolicy.is_permission_error(message)


class TestAttemptElevated:
    @pytest.mark.asyncio
    async def test_declined_raises(self) -> None:
        """Without a yes the privileged variant never runs."""
        calls = []

        async def retry():
            calls.append("retry")

        policy = PermissionElevationPolicy(lambda description, label: False)
        with pytest.raises(ElevationDeclinedError):
            await policy.attempt_elevated("delete", "/etc/hosts", retry)
        assert calls == []

    @pytest.mark.asyncio
    async def test_no_callback_means_declined(self) -> None:
        policy = PermissionElevationPolicy()

        async def retry():
            return "done"

        with pytest.raises(ElevationDeclinedError):
            await policy.attempt_elevated("delete", "/etc/hosts", retry)

    @pytest.mark.asyncio
    async def test_async_confirmation(self) -> None:
        """Confirmation callbacks may be coroutines."""
        prompts = []

        async def confirm(description, label):
            prompts.append((description, label))
            return True

        async def retry():
            return "done"

        policy = PermissionElevationPolicy(confirm)
        assert await policy.attempt_elevated("rename", "hosts", retry) == "done"
        assert prompts == [("rename", "hosts")]

    @pytest.mark.asyncio
    async def test_elevated_failure_is_final(self) -> None:
        """A failing privileged retry is wrapped and not attempted again."""
        attempts = []

        async def retry():
            attempts.append(1)
            raise RemoteOperationError("rename", "hosts", "Permission denied")

        policy = PermissionElevationPolicy(lambda description, label: True)
        with pytest.raises(ElevatedOperationError):
            await policy.attempt_elevated("rename", "hosts", retry)
        assert attempts == [1]


class TestRun:
    @pytest.mark.asyncio
    async def test_non_permission_failures_pass_through(self) -> None:
        prompts = []

        async def operation():
            raise RemoteOperationError("delete", "x", "connection reset by peer")

        async def elevated():
            return "elevated"

        policy = PermissionElevationPolicy(lambda d, l: prompts.append(d) or True)
        with pytest.raises(RemoteOperationError) as info:
            await policy.run("delete", "x", operation, elevated)
        assert not isinstance(info.value, ElevatedOperationError)
        assert prompts == []

    @pytest.mark.asyncio
    async def test_permission_failure_detours_through_elevation(self) -> None:
        async def operation():
            raise RemoteOperationError("delete", "x", "Permission denied")

        async def elevated():
            return "elevated"

        policy = PermissionElevationPolicy(lambda d, l: True)
        assert await policy.run("delete", "x", operation, elevated) == "elevated"

    @pytest.mark.asyncio
    async def test_success_needs_no_prompt(self) -> None:
        async def operation():
            return "plain"

        async def elevated():
            return "elevated"

        policy = PermissionElevationPolicy()
        assert await policy.run("delete", "x", operation, elevated) == "plain"
