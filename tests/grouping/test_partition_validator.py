import unittest

from commit_splitter.errors import ExternalServiceError
from commit_splitter.grouping.partition_validator import parse_groups, validate_partition


class TestParseGroups(unittest.TestCase):
    def test_bare_array(self) -> None:
        raw = '[{"message": "feat: x", "files": ["a.ts"]}]'
        self.assertEqual(parse_groups(raw), [{"message": "feat: x", "files": ["a.ts"]}])

    def test_fenced_block_is_preferred(self) -> None:
        raw = (
            "Here you go [not json]\n"
            "```json\n"
            '[{"message": "fix: y", "files": ["b.ts"]}]\n'
            "```\n"
        )
        self.assertEqual(parse_groups(raw)[0]["message"], "fix: y")

    def test_array_surrounded_by_prose(self) -> None:
        raw = 'Sure! [{"message": "docs: z", "files": ["README.md"]}] Hope this helps.'
        self.assertEqual(parse_groups(raw)[0]["files"], ["README.md"])

    def test_thinking_tags_are_ignored(self) -> None:
        raw = '<think>maybe ["a.ts"] alone?</think>[{"message": "m", "files": ["a.ts", "b.ts"]}]'
        self.assertEqual(parse_groups(raw)[0]["files"], ["a.ts", "b.ts"])

    def test_no_array_raises(self) -> None:
        with self.assertRaises(ExternalServiceError):
            parse_groups("I could not decide, sorry.")
        with self.assertRaises(ExternalServiceError):
            parse_groups("")


class TestValidatePartition(unittest.TestCase):
    def test_missing_file_appended_to_last_group(self) -> None:
        raw = [{"message": "feat: x", "files": ["a.ts"]}]
        groups = validate_partition(raw, ["a.ts", "b.ts"])
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].message, "feat: x")
        self.assertEqual(groups[0].files, ["a.ts", "b.ts"])

    def test_unknown_files_are_dropped(self) -> None:
        raw = [
            {"message": "feat: x", "files": ["a.ts", "ghost.ts"]},
            {"message": "fix: only ghosts", "files": ["nope.ts"]},
        ]
        groups = validate_partition(raw, ["a.ts"])
        self.assertEqual([(g.message, g.files) for g in groups], [("feat: x", ["a.ts"])])

    def test_duplicates_stay_in_first_group(self) -> None:
        raw = [
            {"message": "one", "files": ["a", "b"]},
            {"message": "two", "files": ["b", "c"]},
        ]
        groups = validate_partition(raw, ["a", "b", "c"])
        self.assertEqual([g.files for g in groups], [["a", "b"], ["c"]])

    def test_empty_response_gives_single_default_group(self) -> None:
        groups = validate_partition([], ["a", "b"], default_message="chore: update 2 files")
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].message, "chore: update 2 files")
        self.assertEqual(groups[0].files, ["a", "b"])

    def test_malformed_entries_contribute_nothing(self) -> None:
        raw = ["text", 42, {"message": "m"}, {"files": "a"}, {"message": None, "files": ["a", 3]}]
        groups = validate_partition(raw, ["a", "b"], default_message="chore: update")
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].message, "chore: update")
        self.assertEqual(groups[0].files, ["a", "b"])

    def test_empty_file_list(self) -> None:
        self.assertEqual(validate_partition([{"message": "m", "files": ["a"]}], []), [])

    def test_result_is_exact_partition(self) -> None:
        files = ["a", "b", "c", "d", "e"]
        raw = [
            {"message": "g1", "files": ["e", "a", "zzz"]},
            {"message": "g2", "files": ["a"]},
            {"message": "g3", "files": ["c"]},
        ]
        groups = validate_partition(raw, files)
        flattened = [path for g in groups for path in g.files]
        self.assertEqual(sorted(flattened), files)
        self.assertEqual(len(flattened), len(set(flattened)))
        self.assertTrue(all(g.files and g.message for g in groups))


if __name__ == "__main__":
    unittest.main()
