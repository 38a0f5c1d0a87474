"""Import reference extraction and resolution.

Finds ES module imports and CommonJS ``require`` calls in file text and
resolves relative specifiers to files inside the repository. Package
imports are never resolved.
"""

import posixpath
import re

from testimpact.lib.git import RevisionSource
from testimpact.models.impact import ImportReference

DEFAULT_EXTENSIONS: tuple[str, ...] = (".ts", ".js", ".tsx", ".jsx")
DEFAULT_INDEX_BASENAME = "index"

# import 'x'; import a from 'x'; import { a } from 'x'; import * as a from 'x'
STATIC_IMPORT_PATTERN = re.compile(
    r"import\s+(?:(?:type\s+)?(?:(?:\w+\s*,\s*)?(?:\{[^}]*\}|\*\s+as\s+\w+)|\w+)\s+from\s+)?"
    r"['\"]([^'\"]+)['\"];?"
)

# require('x')
REQUIRE_PATTERN = re.compile(r"require\s*\(\s*['\"]([^'\"]+)['\"]\s*\)")


def extract_references(content: str | None) -> list[ImportReference]:
    """
    Extract module specifiers from file content.

    Args:
        content: File text, or None when the file is absent

    Returns:
        References in line order; on one line, static imports come before
        require calls
    """
    if not content:
        return []

    references: list[ImportReference] = []

    for index, line in enumerate(content.split("\n")):
        for pattern in (STATIC_IMPORT_PATTERN, REQUIRE_PATTERN):
            for match in pattern.finditer(line):
                references.append(ImportReference(specifier=match.group(1), line=index + 1))

    return references


def is_external_specifier(specifier: str) -> bool:
    """Check if a specifier names a package rather than a repository path."""
    return not (specifier.startswith(".") or specifier.startswith("/"))


def candidate_paths(
    specifier: str,
    referencing_file: str,
    extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
    index_basename: str = DEFAULT_INDEX_BASENAME,
) -> list[str]:
    """
    Build the ordered list of paths an import may refer to.

    Args:
        specifier: Relative or absolute module specifier
        referencing_file: Path of the importing file, relative to the root
        extensions: Extensions probed when the specifier omits one
        index_basename: File name probed inside a directory

    Returns:
        Exact path, then path with each extension, then directory index
        files; empty when the path leaves the repository
    """
    directory = posixpath.dirname(referencing_file)
    resolved = posixpath.normpath(posixpath.join(directory, specifier.lstrip("/")))
    resolved = resolved.lstrip("/")

    if resolved in ("", ".") or resolved == ".." or resolved.startswith("../"):
        return []

    candidates = [resolved]
    candidates.extend(f"{resolved}{extension}" for extension in extensions)
    candidates.extend(
        posixpath.join(resolved, f"{index_basename}{extension}") for extension in extensions
    )
    return candidates


def resolve_import_path(
    specifier: str,
    referencing_file: str,
    revision: str,
    source: RevisionSource,
    extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
    index_basename: str = DEFAULT_INDEX_BASENAME,
) -> str | None:
    """
    Resolve an import specifier to a file path at a revision.

    Args:
        specifier: Module specifier as written in the import
        referencing_file: Path of the importing file
        revision: Revision the candidates are checked against
        source: Revision source used for existence checks
        extensions: Extensions probed when the specifier omits one
        index_basename: File name probed inside a directory

    Returns:
        First existing candidate path, or None for external or missing
        modules
    """
    if is_external_specifier(specifier):
        return None

    for candidate in candidate_paths(specifier, referencing_file, extensions, index_basename):
        if source.file_exists(candidate, revision):
            return candidate

    return None


__all__ = [
    "DEFAULT_EXTENSIONS",
    "DEFAULT_INDEX_BASENAME",
    "extract_references",
    "is_external_specifier",
    "candidate_paths",
    "resolve_import_path",
]
