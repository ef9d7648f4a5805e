# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
import re
import sys
from pathlib import Path
from typing import Iterator, List, Set, Tuple

# Every test needs at least one marker from each category
CATEGORIES = {
    "pipeline": {"nightly", "pre_merge", "post_merge"},
    "type": {"unit", "integration"},
    "infra": {"k8s", "k8s_0"},
}

MARKER_PAT = re.compile(r"pytest\.mark\.([A-Za-z0-9_]+)")
IGNORED = {"parametrize", "asyncio", "skip", "skipif", "xfail"}


def extract_file_level_markers(lines: List[str]) -> Set[str]:
    markers: Set[str] = set()
    in_list = False
    for line in lines:
        stripped = line.strip()
        if stripped.startswith("pytestmark"):
            markers.update(MARKER_PAT.findall(stripped))
            in_list = "[" in stripped and "]" not in stripped
        elif in_list:
            markers.update(MARKER_PAT.findall(stripped))
            if "]" in stripped:
                in_list = False
        if stripped.startswith(("def ", "class ")):
            break
    return markers


def decorator_markers(lines: List[str], idx: int, max_lines: int = 20) -> Set[str]:
    # Overscans decorator stacks with argument blocks
    found: Set[str] = set()
    for j in range(idx - 1, max(idx - max_lines, -1), -1):
        found.update(m for m in MARKER_PAT.findall(lines[j]) if m not in IGNORED)
    return found


def missing_categories(markers: Set[str]) -> List[str]:
    return [cat for cat, allowed in CATEGORIES.items() if not markers & allowed]


def file_tests_with_missing_categories(
    path: Path,
) -> Iterator[Tuple[int, str, List[str]]]:
    lines = path.read_text(encoding="utf-8").splitlines()
    file_level = extract_file_level_markers(lines)
    for idx, line in enumerate(lines):
        if re.match(r"^\s*(async\s+)?def test_", line):
            missing = missing_categories(file_level | decorator_markers(lines, idx))
            if missing:
                yield idx + 1, line.strip(), missing


def main():
    tests_dir = Path(__file__).parent / "tests"
    if not tests_dir.is_dir():
        print(f"Could not find tests directory at: {tests_dir}")
        sys.exit(1)

    test_files = sorted(tests_dir.rglob("test_*.py"))
    if not test_files:
        print(f"No test_*.py files found recursively under {tests_dir}/")
        return

    error = False
    for path in test_files:
        for lineno, sig, missing in file_tests_with_missing_categories(path):
            print(
                f"File {path}, line {lineno}: '{sig}' is missing marker(s) from: "
                f"{', '.join(missing)}"
            )
            error = True

    if error:
        print("\nERROR: Some tests are missing required category markers.")
        sys.exit(1)


if __name__ == "__main__":
    main()
