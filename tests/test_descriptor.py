"""Tests for descriptor module."""

import dataclasses
import pytest

from filewatcher.descriptor import (
    FullDescriptor,
    DeletionNotice,
    parse_watched_project,
    normalize_drive_letter,
    validate_path_to_monitor,
)
from filewatcher.exceptions import DescriptorError, InvalidPathError, MissingFieldError
from filewatcher.models import ChangeEvent, EventType


def make_record(**overrides):
    record = {
        "projectID": "proj-1",
        "pathToMonitor": "/home/user/projects/app",
        "ignoredPaths": ["/node_modules", "*/build/*"],
        "ignoredFilenames": [".DS_Store", "*.swp"],
        "projectWatchStateId": "state-7",
        "type": "project",
        "projectCreationTime": 1_600_000_000_000,
        "refPaths": [
            {"from": "/home/user/shared/config.json", "to": "/config.json"},
            {"from": "/home/user/shared/.env", "to": "/.env"},
        ],
    }
    record.update(overrides)
    return record


class TestValidatePathToMonitor:
    """Tests for path validation."""

    def test_valid_path(self):
        validate_path_to_monitor("/home/user/app")

    def test_root_only_rejected(self):
        # "/" ends with a separator
        with pytest.raises(InvalidPathError):
            validate_path_to_monitor("/")

    @pytest.mark.parametrize("path", [
        "",
        None,
        "/home\\user\\app",
        "home/user/app",
        "/home/user/app/",
        "c:/Users/app",
    ])
    def test_invalid_paths(self, path):
        with pytest.raises(InvalidPathError):
            validate_path_to_monitor(path)


class TestNormalizeDriveLetter:
    """Tests for normalize_drive_letter."""

    def test_lowercases_drive(self):
        assert normalize_drive_letter("C:/Users/app") == "c:/Users/app"

    def test_unix_path_untouched(self):
        assert normalize_drive_letter("/Users/App") == "/Users/App"

    def test_none(self):
        assert normalize_drive_letter(None) is None


class TestParseWatchedProject:
    """Tests for parse_watched_project."""

    def test_full_record(self):
        descriptor = parse_watched_project(make_record())

        assert isinstance(descriptor, FullDescriptor)
        assert descriptor.project_id == "proj-1"
        assert descriptor.path_to_monitor == "/home/user/projects/app"
        assert descriptor.optional_path_to_monitor == "/home/user/projects/app"
        assert descriptor.ignored_paths == ("/node_modules", "*/build/*")
        assert descriptor.ignored_filenames == (".DS_Store", "*.swp")
        assert descriptor.watch_state_id == "state-7"
        assert descriptor.is_external is False
        assert descriptor.creation_time_msecs == 1_600_000_000_000
        assert descriptor.files_to_watch == (
            "/home/user/shared/config.json",
            "/home/user/shared/.env",
        )

    def test_minimal_record(self):
        descriptor = parse_watched_project({"projectID": "p", "pathToMonitor": "/a"})

        assert descriptor.ignored_paths == ()
        assert descriptor.ignored_filenames == ()
        assert descriptor.files_to_watch == ()
        assert descriptor.watch_state_id is None
        assert descriptor.creation_time_msecs is None
        assert descriptor.is_external is False

    def test_lists_are_copied(self):
        record = make_record()
        descriptor = parse_watched_project(record)

        record["ignoredPaths"].append("/dist")
        record["ignoredFilenames"].clear()

        assert "/dist" not in descriptor.ignored_paths
        assert descriptor.ignored_filenames == (".DS_Store", "*.swp")

    @pytest.mark.parametrize("type_value", ["non-project", "NON-PROJECT", "Non-Project"])
    def test_external_type_case_insensitive(self, type_value):
        descriptor = parse_watched_project(make_record(type=type_value))
        assert descriptor.is_external is True

    def test_missing_type_not_external(self):
        record = make_record()
        del record["type"]
        assert parse_watched_project(record).is_external is False

    @pytest.mark.parametrize("path", ["", "relative/app", "/app/", "/home\\app"])
    def test_invalid_path_rejected(self, path):
        with pytest.raises(InvalidPathError):
            parse_watched_project(make_record(pathToMonitor=path))

    def test_missing_path_rejected(self):
        record = make_record()
        del record["pathToMonitor"]
        with pytest.raises(InvalidPathError):
            parse_watched_project(record)

    def test_windows_drive_path_not_repaired(self):
        with pytest.raises(InvalidPathError):
            parse_watched_project(make_record(pathToMonitor="C:/Users/app"))

    def test_missing_project_id(self):
        record = make_record()
        del record["projectID"]
        with pytest.raises(MissingFieldError):
            parse_watched_project(record)

    def test_non_positive_creation_time_rejected(self):
        with pytest.raises(DescriptorError):
            parse_watched_project(make_record(projectCreationTime=0))

    @pytest.mark.parametrize("overrides", [
        {"refPaths": [{"to": "/config.json"}]},
        {"refPaths": [{"from": "", "to": "/config.json"}]},
        {"refPaths": ["/home/user/shared/config.json"]},
        {"refPaths": {"from": "/home/user/shared/config.json"}},
        {"type": 3},
        {"type": ["non-project"]},
        {"projectCreationTime": "1600000000000"},
        {"projectCreationTime": True},
        {"projectCreationTime": 1.5},
        {"projectID": 42},
        {"pathToMonitor": 42},
        {"projectWatchStateId": 7},
        {"ignoredPaths": "/node_modules"},
        {"ignoredFilenames": [".DS_Store", None]},
    ])
    def test_malformed_fields_rejected(self, overrides):
        with pytest.raises(DescriptorError):
            parse_watched_project(make_record(**overrides))

    def test_ref_path_without_source_is_missing_field(self):
        with pytest.raises(MissingFieldError):
            parse_watched_project(make_record(refPaths=[{"to": "/config.json"}]))

    @pytest.mark.parametrize("record", [None, "proj-1", ["proj-1"]])
    def test_non_object_record_rejected(self, record):
        with pytest.raises(DescriptorError):
            parse_watched_project(record)

    def test_deletion_notice(self):
        descriptor = parse_watched_project(make_record(), is_deletion=True)

        assert isinstance(descriptor, DeletionNotice)
        assert descriptor.project_id == "proj-1"
        assert descriptor.watch_state_id is None
        assert descriptor.optional_path_to_monitor is None

    def test_deletion_notice_skips_path_validation(self):
        record = {"projectID": "proj-1", "pathToMonitor": "not/a/valid/path/"}
        descriptor = parse_watched_project(record, is_deletion=True)
        assert descriptor.optional_path_to_monitor is None

    def test_deletion_notice_requires_project_id(self):
        with pytest.raises(MissingFieldError):
            parse_watched_project({}, is_deletion=True)


class TestFullDescriptor:
    """Tests for FullDescriptor behaviour."""

    def test_immutable(self):
        descriptor = parse_watched_project(make_record())
        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.path_to_monitor = "/elsewhere"

    def test_with_creation_time_preserves_other_fields(self):
        source = parse_watched_project(make_record())
        clone = source.with_creation_time(1_700_000_000_000)

        assert clone is not source
        assert clone.creation_time_msecs == 1_700_000_000_000
        assert source.creation_time_msecs == 1_600_000_000_000

        original_fields = dataclasses.asdict(source)
        clone_fields = dataclasses.asdict(clone)
        del original_fields["creation_time_msecs"]
        del clone_fields["creation_time_msecs"]
        assert clone_fields == original_fields

    def test_with_creation_time_validates(self):
        source = parse_watched_project(make_record())
        with pytest.raises(DescriptorError):
            source.with_creation_time(-5)

    def test_direct_construction_validates_path(self):
        with pytest.raises(InvalidPathError):
            FullDescriptor(project_id="p", path_to_monitor="/trailing/")

    def test_direct_construction_copies_lists(self):
        ignored = ["/tmp"]
        descriptor = FullDescriptor(project_id="p", path_to_monitor="/a", ignored_paths=ignored)
        ignored.append("/other")
        assert descriptor.ignored_paths == ("/tmp",)

    def test_should_ignore_filename(self):
        descriptor = parse_watched_project(make_record())
        assert descriptor.should_ignore("/home/user/projects/app/src/.DS_Store")
        assert descriptor.should_ignore("/home/user/projects/app/main.py.swp")
        assert not descriptor.should_ignore("/home/user/projects/app/main.py")

    def test_should_ignore_path_prefix(self):
        descriptor = parse_watched_project(make_record())
        assert descriptor.should_ignore("/home/user/projects/app/node_modules")
        assert descriptor.should_ignore("/home/user/projects/app/node_modules/x/index.js")
        assert not descriptor.should_ignore("/home/user/projects/app/node_modules_old/a.js")

    def test_should_ignore_glob(self):
        descriptor = parse_watched_project(make_record())
        assert descriptor.should_ignore("/home/user/projects/app/web/build/out.js")
        assert not descriptor.should_ignore("/home/user/projects/app/web/src/out.js")

    def test_predates_watch(self):
        descriptor = parse_watched_project(make_record(projectCreationTime=1000))
        old = ChangeEvent("/home/user/projects/app/a", EventType.CREATE, timestamp=999)
        new = ChangeEvent("/home/user/projects/app/a", EventType.CREATE, timestamp=1000)

        assert descriptor.predates_watch(old)
        assert not descriptor.predates_watch(new)

    def test_no_creation_time_never_stale(self):
        descriptor = parse_watched_project({"projectID": "p", "pathToMonitor": "/a"})
        event = ChangeEvent("/a/x", EventType.MODIFY, timestamp=1)
        assert not descriptor.predates_watch(event)
