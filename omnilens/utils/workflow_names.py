"""
Workflow naming utilities.

One place for the string rules that let the same logical workflow be matched
whether it is referenced by display name ("Build"), by file
(".github/workflows/build.yml") or by a decorated label ("🚀 Trigger Build").

Usage:
    from omnilens.utils.workflow_names import normalize_name, file_basename

    normalize_name("  Build ")              # "build"
    file_basename(".github/workflows/CI.yml")  # "ci.yml"
"""

import re
import unicodedata

LOCAL_WORKFLOW_PREFIX = "./.github/workflows/"

_YAML_SUFFIX = re.compile(r"\.ya?ml$", re.IGNORECASE)
_TRIGGER_PREFIX = re.compile(r"^Trigger\s+", re.IGNORECASE)

# Symbols, separators, combining marks and format chars (emoji, variation selectors, ZWJ)
_DECORATION_CATEGORIES = ("So", "Sk", "Sm", "Zs", "Mn", "Me", "Cf")


def normalize_name(name: str | None) -> str:
    """
    Matching key for a workflow name: lowercased and trimmed.

    Examples:
        >>> normalize_name("  Build And Test ")
        'build and test'
        >>> normalize_name(None)
        ''
    """
    if not name:
        return ""
    return str(name).lower().strip()


def file_basename(path: str | None) -> str:
    """
    Lowercased final path component of a workflow file reference.

    Any ``@ref`` suffix is dropped, so ``./.github/workflows/lint.yml@main``
    and ``.github/workflows/lint.yml`` share the key ``lint.yml``.

    Examples:
        >>> file_basename(".github/workflows/Build.yml")
        'build.yml'
    """
    if not path:
        return ""
    base = str(path).strip().split("@", 1)[0].rstrip("/").split("/")[-1]
    return base.lower()


def strip_yaml_suffix(basename: str) -> str:
    """Drop a trailing .yml/.yaml."""
    return _YAML_SUFFIX.sub("", basename)


def file_stem(path: str | None) -> str:
    """
    Extension-insensitive file key: the basename without .yml/.yaml.

    Examples:
        >>> file_stem(".github/workflows/CI.yaml")
        'ci'
    """
    return strip_yaml_suffix(file_basename(path))


def display_name_from_path(path: str | None) -> str:
    """
    Human-readable name derived from a workflow file path.

    Examples:
        >>> display_name_from_path(".github/workflows/build-and_test.yml")
        'build and test'
    """
    base = file_basename(path)
    return re.sub(r"[-_]", " ", strip_yaml_suffix(base))


def title_from_path(path: str | None) -> str:
    """
    Title-cased display label for list views.

    Examples:
        >>> title_from_path(".github/workflows/nightly-build.yml")
        'Nightly Build'
    """
    return " ".join(word[:1].upper() + word[1:] for word in display_name_from_path(path).split())


def remove_leading_decoration(name: str | None) -> str:
    """
    Remove emoji and whitespace from the beginning of a workflow name.

    Examples:
        >>> remove_leading_decoration("⏱️ Thresholds")
        'Thresholds'
    """
    if not name:
        return ""
    index = 0
    while index < len(name) and unicodedata.category(name[index]) in _DECORATION_CATEGORIES:
        index += 1
    return name[index:].strip()


def clean_workflow_name(name: str | None) -> str:
    """
    Display name without leading emoji and without a "Trigger " prefix.

    Examples:
        >>> clean_workflow_name("🚀 Trigger Nightly Build")
        'Nightly Build'
    """
    if not name:
        return ""
    return _TRIGGER_PREFIX.sub("", remove_leading_decoration(name)).strip()


def is_local_workflow_reference(uses: object) -> bool:
    """True when a job's ``uses`` points at a workflow file in the same repository."""
    return isinstance(uses, str) and uses.strip().startswith(LOCAL_WORKFLOW_PREFIX)
