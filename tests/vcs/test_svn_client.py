"""Tests for the SVN client."""

import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from vc_ai_commits.vcs.change_model import Change
from vc_ai_commits.vcs.svn_client import SVNClient, SVNError, extract_branch_name


class TestExtractBranchName(unittest.TestCase):
    def test_standard_layout(self) -> None:
        cases = [
            ("https://svn.example.com/repo/trunk", "trunk"),
            ("https://svn.example.com/repo/trunk/src/main.c", "trunk"),
            ("https://svn.example.com/repo/branches/feature-x", "feature-x"),
            ("https://svn.example.com/repo/branches/feature-x/src/main.c", "feature-x"),
            ("https://svn.example.com/repo/tags/v1.0", "tag: v1.0"),
            ("https://svn.example.com/repo/Tags/v2.0/README", "tag: v2.0"),
            ("https://svn.example.com/repo/custom/path", None),
        ]
        for url, expected in cases:
            with self.subTest(url=url):
                self.assertEqual(extract_branch_name(url), expected)


class TestSVNClient(unittest.TestCase):
    @patch("vc_ai_commits.vcs.svn_client.subprocess.run")
    def test_get_current_branch_for_file(self, mock_run) -> None:
        mock_run.return_value = Mock(returncode=0, stdout="https://svn.example.com/repo/branches/fix-1/a.c\n", stderr="")
        client = SVNClient(Path("/fake/repo"))
        self.assertEqual(client.get_current_branch("a.c"), "fix-1")
        args = mock_run.call_args[0][0]
        self.assertEqual(args, ["svn", "info", "--show-item", "url", "--", "a.c"])

    @patch("vc_ai_commits.vcs.svn_client.subprocess.run")
    def test_get_changes_filters_and_maps(self, mock_run) -> None:
        mock_run.return_value = Mock(
            returncode=0,
            stdout=(
                "M       src/main.c\n"
                "A       src/new.c\n"
                "?       scratch.txt\n"
                "I       build.log\n"
                "X       vendor/lib\n"
                "C       conflicted.c\n"
            ),
            stderr="",
        )
        root = Path("/fake/repo")
        changes = SVNClient(root).get_changes()
        self.assertEqual([c.path for c in changes], ["src/main.c", "src/new.c", "vendor/lib", "conflicted.c"])
        self.assertEqual(changes[1].status, "A")
        self.assertEqual(changes[3].status, "M")
        self.assertTrue(changes[2].is_submodule)
        self.assertTrue(all(c.repo_root == root for c in changes))
        self.assertEqual(mock_run.call_args[0][0], ["svn", "status", "--ignore-externals"])

    @patch("vc_ai_commits.vcs.svn_client.subprocess.run")
    def test_get_changes_skips_non_status_lines(self, mock_run) -> None:
        mock_run.return_value = Mock(
            returncode=0,
            stdout=(
                "X       ext\n"
                "\n"
                "Performing status on external item at 'ext':\n"
                "M       src/main.c\n"
                "      C src/moved.c\n"
                "      >   local edit, incoming delete upon update\n"
                "\n"
                "--- Changelist 'review':\n"
                "A       src/new.c\n"
                "Summary of conflicts:\n"
                "  Tree conflicts: 1\n"
            ),
            stderr="",
        )
        changes = SVNClient(Path("/fake/repo")).get_changes()
        self.assertEqual([c.path for c in changes], ["ext", "src/main.c", "src/moved.c", "src/new.c"])
        self.assertTrue(changes[0].is_submodule)
        self.assertFalse(any(c.is_submodule for c in changes[1:]))

    def test_reverse_diff_not_supported(self) -> None:
        client = SVNClient(Path("/fake/repo"))
        with self.assertRaises(SVNError):
            client.get_diff(Change(path="a.c", status="M"), reverse=True)

    @patch("vc_ai_commits.vcs.svn_client.subprocess.run")
    def test_missing_executable(self, mock_run) -> None:
        mock_run.side_effect = FileNotFoundError("svn")
        with self.assertRaises(SVNError):
            SVNClient(Path("/fake/repo")).get_changes()

    def test_commit_requires_files(self) -> None:
        with self.assertRaises(SVNError):
            SVNClient(Path("/fake/repo")).commit("msg", [])

    def test_stage_files_schedules_adds_and_deletes(self) -> None:
        with patch.object(SVNClient, "_run") as mock_run:
            SVNClient(Path("/fake/repo")).stage_files(
                ["a.c", "b.c", "c.c"], statuses={"a.c": "A", "b.c": "D"}
            )
        calls = [c[0][0] for c in mock_run.call_args_list]
        self.assertEqual(calls, [["add", "--force", "--", "a.c"], ["delete", "--", "b.c"]])


if __name__ == "__main__":
    unittest.main()
