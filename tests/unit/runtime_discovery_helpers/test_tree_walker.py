"""Tests for the bounded installation-tree walk."""

import os
import sys

import pytest

from worker_supervisor.runtime_discovery_helpers import BoundedTreeWalker


def _executable_for_home(home):
    return home / "bin" / "java"


def _make_home(path):
    (path / "bin").mkdir(parents=True)
    (path / "bin" / "java").write_text("#!/bin/sh\n")
    return path / "bin" / "java"


class TestBoundedTreeWalker:
    """Depth bounds, ordering and cycle safety."""

    def test_finds_homes_within_depth(self, tmp_path):
        shallow = _make_home(tmp_path / "jdk-17")
        deep = _make_home(tmp_path / "vendor" / "jdk-21")

        walker = BoundedTreeWalker(2, _executable_for_home)
        assert walker.find_executables([tmp_path]) == [shallow, deep]

    def test_respects_max_depth(self, tmp_path):
        _make_home(tmp_path / "a" / "b" / "c" / "jdk")
        walker = BoundedTreeWalker(2, _executable_for_home)
        assert walker.find_executables([tmp_path]) == []

    def test_zero_depth_only_checks_roots(self, tmp_path):
        root_exe = _make_home(tmp_path / "jdk")
        _make_home(tmp_path / "jdk" / "nested")
        walker = BoundedTreeWalker(0, _executable_for_home)
        assert walker.find_executables([tmp_path / "jdk", tmp_path]) == [root_exe]

    def test_missing_roots_are_ignored(self, tmp_path):
        walker = BoundedTreeWalker(3, _executable_for_home)
        assert walker.find_executables([tmp_path / "absent"]) == []

    @pytest.mark.skipif(sys.platform.startswith("win"), reason="symlinks need privileges on Windows")
    def test_symlink_cycle_terminates(self, tmp_path):
        loop_dir = tmp_path / "loop"
        loop_dir.mkdir()
        os.symlink(tmp_path, loop_dir / "back")
        exe = _make_home(tmp_path / "jdk")

        walker = BoundedTreeWalker(10, _executable_for_home)
        assert walker.find_executables([tmp_path]) == [exe]
