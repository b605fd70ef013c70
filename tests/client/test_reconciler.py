"""Tests for reconciliation between the vault and the drive."""

from pathlib import Path

import pytest

from tests.fakes import FakeDrive, make_session
from vaultdrive.client.api import FOLDER_MIME_TYPE, RemoteError
from vaultdrive.client.auth import AuthError
from vaultdrive.client.sync.namespace import HIDDEN_SPACE
from vaultdrive.client.sync.reconciler import Reconciler
from vaultdrive.client.sync.session import SyncSession
from vaultdrive.client.sync.types import FileOperation, NamespaceError
from vaultdrive.client.vault import LocalFile, VaultFileSystem
from vaultdrive.core.config import StorageLocation


def write(vault: VaultFileSystem, path: str, content: str) -> None:
    """Write a file into the vault directly."""
    target = vault.root / path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)


@pytest.fixture
def reconciler(session: SyncSession, vault: VaultFileSystem) -> Reconciler:
    """Create a reconciler over the fake drive and a temporary vault."""
    return Reconciler(session, vault)


class TestSyncFile:
    """Tests for pushing single files."""

    def test_creates_missing_file(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should create a remote file named by its vault path."""
        write(vault, "notes/a.md", "# A")

        assert reconciler.sync_file("notes/a.md") is FileOperation.CREATED

        [entry] = drive.named("notes/a.md")
        assert entry.content == b"# A"
        assert entry.parents == [HIDDEN_SPACE]

    def test_updates_existing_file(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should overwrite the content of an existing entry in place."""
        existing = drive.add("a.md", b"old")
        write(vault, "a.md", "new")

        assert reconciler.sync_file("a.md") is FileOperation.UPDATED

        assert drive.named("a.md") == [existing]
        assert existing.content == b"new"

    def test_repeated_sync_is_idempotent(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should never create a second entry for the same path."""
        write(vault, "a.md", "body")

        reconciler.sync_file("a.md")
        reconciler.sync_file("a.md")
        reconciler.sync_file("a.md")

        assert len(drive.named("a.md")) == 1
        assert drive.count("create") == 1
        assert drive.count("update") == 2

    def test_duplicate_remote_entries_update_first(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should update the first entry when names collide."""
        first = drive.add("a.md", b"one")
        second = drive.add("a.md", b"two")
        write(vault, "a.md", "three")

        reconciler.sync_file("a.md")

        assert first.content == b"three"
        assert second.content == b"two"

    def test_missing_local_file(self, reconciler: Reconciler, drive: FakeDrive) -> None:
        """Should fail before contacting the drive when the file is gone."""
        with pytest.raises(OSError):
            reconciler.sync_file("ghost.md")
        assert drive.count("create") == 0


class TestHandleRename:
    """Tests for mirroring renames."""

    def test_rename_keeps_remote_id(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should rename the existing entry and push the content again."""
        entry = drive.add("old.md", b"old body")
        write(vault, "new.md", "new body")

        assert reconciler.handle_rename("new.md", "old.md") is FileOperation.RENAMED

        assert drive.named("old.md") == []
        assert drive.named("new.md") == [entry]
        assert entry.content == b"new body"
        assert drive.count("create") == 0

    def test_rename_of_unsynced_file_creates(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should fall back to a plain sync when the old path is unknown."""
        write(vault, "new.md", "body")

        assert reconciler.handle_rename("new.md", "old.md") is FileOperation.CREATED

        assert len(drive.named("new.md")) == 1
        assert drive.count("rename") == 0


class TestHandleDelete:
    """Tests for mirroring deletions."""

    def test_delete_existing(self, reconciler: Reconciler, drive: FakeDrive) -> None:
        """Should delete the remote entry."""
        drive.add("a.md", b"body")

        assert reconciler.handle_delete("a.md") is FileOperation.DELETED
        assert drive.named("a.md") == []

    def test_delete_is_idempotent(self, reconciler: Reconciler, drive: FakeDrive) -> None:
        """Should be a no-op when nothing matches."""
        drive.add("a.md", b"body")

        reconciler.handle_delete("a.md")

        assert reconciler.handle_delete("a.md") is FileOperation.NONE
        assert drive.count("delete") == 1

    def test_delete_only_first_duplicate(self, reconciler: Reconciler, drive: FakeDrive) -> None:
        """Should delete only the first entry when names collide."""
        drive.add("a.md", b"one")
        second = drive.add("a.md", b"two")

        reconciler.handle_delete("a.md")

        assert drive.named("a.md") == [second]


class TestFullSync:
    """Tests for full passes."""

    def test_first_pass_creates_everything(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should create every local file on an empty drive."""
        write(vault, "a.md", "A")
        write(vault, "b.md", "B")

        result = reconciler.full_sync()

        assert result.created == ["a.md", "b.md"]
        assert result.updated == []
        assert result.downloaded == []
        assert result.ok
        assert {e.name for e in drive.entries.values()} == {"a.md", "b.md"}

    def test_second_pass_updates(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should update in place on the next pass."""
        write(vault, "a.md", "A")
        reconciler.full_sync()
        write(vault, "a.md", "A2")

        result = reconciler.full_sync()

        assert result.updated == ["a.md"]
        assert result.created == []
        [entry] = drive.named("a.md")
        assert entry.content == b"A2"

    def test_downloads_missing_files(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should download remote files absent locally without re-uploading them."""
        drive.add("remote/b.md", b"from elsewhere")
        write(vault, "a.md", "A")

        result = reconciler.full_sync()

        assert result.downloaded == ["remote/b.md"]
        assert result.created == ["a.md"]
        assert vault.read("remote/b.md") == b"from elsewhere"
        assert drive.count("update") == 0
        assert len(drive.named("remote/b.md")) == 1

    def test_downloads_are_recorded_on_session(
        self, reconciler: Reconciler, session: SyncSession, drive: FakeDrive
    ) -> None:
        """Should remember downloaded paths so their save events can be dropped."""
        drive.add("b.md", b"B")
        drive.add("c.md", b"C")
        drive.fail("download", RemoteError("gone", 404), name="c.md")

        reconciler.full_sync()

        assert session.take_download("b.md")
        assert not session.take_download("b.md")
        assert not session.take_download("c.md")

    def test_local_file_is_not_overwritten(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should keep the local copy and push it over the remote one."""
        drive.add("a.md", b"remote")
        write(vault, "a.md", "local")

        result = reconciler.full_sync()

        assert result.downloaded == []
        assert result.updated == ["a.md"]
        assert vault.read("a.md") == b"local"
        assert drive.named("a.md")[0].content == b"local"

    def test_skips_download_when_file_appears_after_snapshot(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should not overwrite a file created after the listing was taken."""
        drive.add("a.md", b"remote")
        write(vault, "a.md", "local")

        result = reconciler.full_sync(local_files=[])

        assert result.downloaded == []
        assert vault.read("a.md") == b"local"
        assert drive.count("download") == 0

    def test_duplicate_remote_names_download_once(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should download only the first of several same-named entries."""
        drive.add("a.md", b"first")
        drive.add("a.md", b"second")

        result = reconciler.full_sync()

        assert result.downloaded == ["a.md"]
        assert vault.read("a.md") == b"first"

    def test_remote_folders_are_not_downloaded(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should only download files."""
        drive.add("sub", parents=[HIDDEN_SPACE], mime_type=FOLDER_MIME_TYPE)

        result = reconciler.full_sync()

        assert result.downloaded == []
        assert not vault.exists("sub")

    def test_unsafe_remote_name_is_rejected(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should refuse to write outside the vault and record an error."""
        drive.add("../escape.md", b"evil")
        drive.add("ok.md", b"fine")

        result = reconciler.full_sync()

        assert result.downloaded == ["ok.md"]
        assert len(result.errors) == 1
        assert "../escape.md" in result.errors[0]
        assert not (vault.root.parent / "escape.md").exists()

    def test_per_file_failure_continues(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should record a failing file and keep going."""
        write(vault, "a.md", "A")
        write(vault, "b.md", "B")
        drive.fail("create", RemoteError("quota exceeded", 403), name="a.md")

        result = reconciler.full_sync()

        assert result.created == ["b.md"]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("a.md:")
        assert not result.ok

    def test_download_failure_continues(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should record a failed download and keep going."""
        drive.add("a.md", b"A")
        drive.add("b.md", b"B")
        drive.fail("download", RemoteError("gone", 404), name="a.md")

        result = reconciler.full_sync()

        assert result.downloaded == ["b.md"]
        assert not vault.exists("a.md")
        assert len(result.errors) == 1

    def test_listing_failure_still_uploads(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should skip downloads but still push local files."""
        write(vault, "a.md", "A")
        drive.fail("list", RemoteError("unavailable", 503))

        result = reconciler.full_sync()

        # Lookups by name fail too, so the file is recorded as an error
        assert result.downloaded == []
        assert result.errors[0].startswith("listing:")
        assert len(result.errors) == 2
        assert not result.offline

    def test_unreachable_drive_marks_result_offline(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should flag the pass offline when the drive could not be reached."""
        write(vault, "a.md", "A")
        drive.fail("list", RemoteError("network unreachable"))

        result = reconciler.full_sync()

        assert result.offline
        assert result.errors[0].startswith("listing:")

    def test_auth_error_aborts_pass(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should let authentication failures abort the pass."""
        write(vault, "a.md", "A")
        write(vault, "b.md", "B")
        drive.fail("create", AuthError("revoked", 401))

        with pytest.raises(AuthError):
            reconciler.full_sync()
        assert drive.count("create") == 1

    def test_ignored_files_are_not_pushed(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should leave ignored files out of the pass."""
        write(vault, "a.md", "A")
        write(vault, ".git/config", "x")
        write(vault, "draft.tmp", "x")

        result = reconciler.full_sync()

        assert result.created == ["a.md"]

    def test_explicit_file_list(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should push only the given files."""
        write(vault, "a.md", "A")
        write(vault, "b.md", "B")

        result = reconciler.full_sync(local_files=[LocalFile(path="b.md")])

        assert result.created == ["b.md"]
        assert drive.named("a.md") == []


class TestScenarios:
    """End-to-end scenarios over the fake drive."""

    def test_hidden_mode_edit_rename_delete(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should follow a file through edit, rename and delete."""
        write(vault, "a.md", "v1")
        assert reconciler.full_sync().created == ["a.md"]
        [entry] = drive.named("a.md")

        write(vault, "a.md", "v2")
        assert reconciler.sync_file("a.md") is FileOperation.UPDATED
        assert entry.content == b"v2"

        (vault.root / "a.md").rename(vault.root / "b.md")
        assert reconciler.handle_rename("b.md", "a.md") is FileOperation.RENAMED
        assert drive.named("b.md") == [entry]

        (vault.root / "b.md").unlink()
        assert reconciler.handle_delete("b.md") is FileOperation.DELETED
        assert drive.entries == {}

    def test_hidden_files_invisible_to_generic_listing(
        self, reconciler: Reconciler, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should keep hidden-mode files out of unscoped listings."""
        write(vault, "a.md", "A")
        reconciler.full_sync()

        assert drive.list_files("trashed = false") == []
        assert len(drive.list_files("trashed = false", spaces=HIDDEN_SPACE)) == 1

    def test_visible_mode_two_devices(self, tmp_path: Path, drive: FakeDrive) -> None:
        """Should share one folder between two devices."""
        first_vault = VaultFileSystem(tmp_path / "laptop")
        second_vault = VaultFileSystem(tmp_path / "desktop")
        write(first_vault, "a.md", "from laptop")
        write(second_vault, "b.md", "from desktop")

        first = Reconciler(make_session(drive, StorageLocation.VISIBLE, "Notes"), first_vault)
        second = Reconciler(make_session(drive, StorageLocation.VISIBLE, "Notes"), second_vault)

        assert first.full_sync().created == ["a.md"]
        result = second.full_sync()
        assert result.downloaded == ["a.md"]
        assert result.created == ["b.md"]
        assert first.full_sync().downloaded == ["b.md"]

        [folder] = drive.named("Notes")
        assert folder.mime_type == FOLDER_MIME_TYPE
        assert drive.count("create_folder") == 1
        assert all(folder.id in drive.named(name)[0].parents for name in ("a.md", "b.md"))
        assert second_vault.read("a.md") == b"from laptop"
        assert first_vault.read("b.md") == b"from desktop"

    def test_switching_location_keeps_spaces_apart(
        self, session: SyncSession, vault: VaultFileSystem, drive: FakeDrive
    ) -> None:
        """Should sync into the new container after reconfiguration."""
        reconciler = Reconciler(session, vault)
        write(vault, "a.md", "A")
        reconciler.full_sync()

        session.reconfigure(StorageLocation.VISIBLE, "Notes")
        result = reconciler.full_sync()

        assert result.created == ["a.md"]
        parents = sorted(tuple(e.parents) for e in drive.named("a.md"))
        assert parents == sorted([(HIDDEN_SPACE,), (drive.named("Notes")[0].id,)])

    def test_namespace_failure_aborts_pass(self, vault: VaultFileSystem, drive: FakeDrive) -> None:
        """Should abort when the visible folder cannot be created."""
        drive.fail("create_folder", RemoteError("forbidden", 403))
        reconciler = Reconciler(make_session(drive, StorageLocation.VISIBLE, "Notes"), vault)
        write(vault, "a.md", "A")

        with pytest.raises(NamespaceError):
            reconciler.full_sync()
        assert drive.count("create") == 0
