"""Selective sync of Codex's config.toml.

config.toml mixes settings a user wants on every machine (model choice)
with machine-specific ones (MCP server paths, trust settings). Before
upload the file is filtered down to the categories enabled in the
SyncPolicy; after download only the model keys are merged back into the
local file.

The document is handled line by line. Sections are opaque blocks: only
top-level lines (before the first section header) are looked at as
key/value pairs.
"""

from .models import SyncPolicy

MODEL_KEY_PREFIX = "model"
MCP_SECTION_PREFIX = "[mcp_servers"


def _section_included(header: str, policy: SyncPolicy) -> bool:
    if header.startswith(MCP_SECTION_PREFIX):
        return policy.sync_mcp_servers
    # [notice] (dismissed-prompt bookkeeping) and unknown sections
    # are both "other" settings
    return policy.sync_other_config


def _is_blank_or_comment(stripped: str) -> bool:
    return not stripped or stripped.startswith("#")


def filter_config(document: str, policy: SyncPolicy) -> str:
    """Keep only the parts of config.toml the policy selects.

    - Section blocks are kept or dropped as a whole.
    - Top-level ``model*`` lines follow ``sync_model_config``.
    - Other top-level key/value lines follow ``sync_other_config``.
    - Top-level blank and comment lines are kept once output has started,
      so excluded leading content leaves no filler behind.

    Filtering an already-filtered document returns it unchanged.

    Args:
        document: config.toml content.
        policy: Categories to keep.

    Returns:
        Filtered document, every line terminated by "\\n".
    """
    output: list[str] = []
    in_section = False
    keep_section = False

    for line in document.splitlines():
        stripped = line.strip()

        if stripped.startswith("["):
            in_section = True
            keep_section = _section_included(stripped, policy)
            if keep_section:
                output.append(line)
            continue

        if in_section:
            if keep_section:
                output.append(line)
            continue

        if stripped.startswith(MODEL_KEY_PREFIX):
            if policy.sync_model_config:
                output.append(line)
        elif _is_blank_or_comment(stripped):
            if output:
                output.append(line)
        elif policy.sync_other_config:
            output.append(line)

    return "".join(f"{line}\n" for line in output)


def _top_level_key(line: str) -> str | None:
    """Key of a top-level ``key = value`` line, or None."""
    stripped = line.strip()
    if _is_blank_or_comment(stripped) or "=" not in stripped:
        return None
    return stripped.split("=", 1)[0].strip()


def merge_config(local: str, remote: str, policy: SyncPolicy) -> str:
    """Merge the model keys of a downloaded config into the local one.

    For each top-level ``model*`` key in ``remote``, the local top-level
    line with the same key is replaced in place; if there is none, the
    remote line is prepended. Sections and all other keys of ``local``
    are left untouched.

    Args:
        local: Current local config.toml content ("" if missing).
        remote: Filtered config downloaded from the server.
        policy: Only ``sync_model_config`` is consulted.

    Returns:
        The merged document.
    """
    if not policy.sync_model_config:
        return local

    lines = local.splitlines()

    for remote_line in remote.splitlines():
        stripped = remote_line.strip()
        if stripped.startswith("["):
            break
        key = _top_level_key(remote_line)
        if key is None or not key.startswith(MODEL_KEY_PREFIX):
            continue

        replaced = False
        for index, local_line in enumerate(lines):
            if local_line.strip().startswith("["):
                break
            if _top_level_key(local_line) == key:
                lines[index] = remote_line
                replaced = True

        if not replaced:
            lines.insert(0, remote_line)

    return "".join(f"{line}\n" for line in lines)
