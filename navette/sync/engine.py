"""Sync engine for WebDAV replication.

Replicates two local trees against a WebDAV server:

- the accounts directory: flat ``*.json`` credential files stored at the
  root of the remote path
- the Codex directory (``~/.codex``): AGENTS.MD, prompts/, skills/ and a
  filtered copy of config.toml, stored under ``<remote path>codex/``

Each direction copies everything (upload-all or download-all); there is
no change detection. On download the remote side wins.

Failures are recorded per item in the SyncResult and never stop the run:
one locked or corrupt file must not block the rest of the set.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path

from navette.auth.credentials import list_credential_files, write_credential_bytes
from navette.errors import (
    AuthenticationError,
    LocalIOError,
    NavetteError,
    RemoteStatusError,
)
from navette.webdav.client import WebDavClient
from navette.webdav.models import ListingEntry, RemoteEndpoint

from .models import SyncPolicy, SyncResult
from .tomlsync import filter_config, merge_config

logger = logging.getLogger(__name__)

CODEX_REMOTE_DIR = "codex"
PROMPTS_DIR = "prompts"
SKILLS_DIR = "skills"
AGENTS_DOC = "AGENTS.MD"
CONFIG_FILE = "config.toml"
CONFIG_SYNC_FILE = "config.sync.toml"

# Build output inside skills/, never synced
SKIPPED_SKILL_DIRS = {"dist"}

# Type for download validators: raise ValueError to reject content
Validator = Callable[[bytes], None]

# Type for download writers: store the content at the target path
Writer = Callable[[Path, bytes], object]


def validate_json(data: bytes) -> None:
    """Reject content that is not valid JSON.

    Raises:
        ValueError: If the data does not parse.
    """
    try:
        json.loads(data)
    except ValueError as e:
        raise ValueError(f"invalid JSON: {e}") from e


def _is_skipped(name: str) -> bool:
    """Hidden files and transient directories like __pycache__."""
    return name.startswith(".") or name.startswith("__")


class SyncEngine:
    """Engine for replicating local directories to and from WebDAV.

    Example:
        async with WebDavClient() as client:
            engine = SyncEngine(client)
            result = await engine.push(endpoint, SyncPolicy(), accounts_dir, codex_dir)
            print(f"Uploaded {len(result.uploaded)} files")
    """

    def __init__(self, client: WebDavClient):
        """Initialize sync engine.

        Args:
            client: WebDAV client used for every request of the run.
        """
        self._client = client

    async def _ensure_collection(self, endpoint: RemoteEndpoint) -> None:
        """Create a remote collection, logging instead of failing."""
        try:
            await self._client.ensure_collection(endpoint)
        except NavetteError as e:
            logger.warning("could not create %s: %s", endpoint.remote_path, e)

    async def _list(
        self, endpoint: RemoteEndpoint, result: SyncResult, optional: bool = False
    ) -> list[ListingEntry] | None:
        """List a collection, recording failures.

        With ``optional`` a 404 means the collection was never uploaded:
        nothing to sync, not an error.
        """
        try:
            return await self._client.list(endpoint)
        except RemoteStatusError as e:
            if optional and e.status_code == 404:
                logger.debug("%s does not exist yet", endpoint.remote_path)
            else:
                result.add_error(endpoint.remote_path, e)
        except NavetteError as e:
            result.add_error(endpoint.remote_path, e)
        return None

    async def _upload_file(
        self,
        path: Path,
        endpoint: RemoteEndpoint,
        result: SyncResult,
        item: str,
    ) -> None:
        try:
            content = path.read_bytes()
        except OSError as e:
            result.add_error(item, f"read failed: {e}")
            return

        try:
            await self._client.upload(endpoint, path.name, content)
        except NavetteError as e:
            result.add_error(item, e)
            return

        result.uploaded.append(item)

    async def _download_file(
        self,
        endpoint: RemoteEndpoint,
        name: str,
        target: Path,
        result: SyncResult,
        item: str,
        validate: Validator | None = None,
        write: Writer = Path.write_bytes,
    ) -> None:
        try:
            content = await self._client.download_bytes(endpoint, name)
        except NavetteError as e:
            result.add_error(item, e)
            return

        if validate is not None:
            try:
                validate(content)
            except ValueError as e:
                result.add_error(item, e)
                return

        try:
            write(target, content)
        except (OSError, LocalIOError) as e:
            result.add_error(item, f"write failed: {e}")
            return

        result.downloaded.append(item)

    async def _download_optional(
        self, endpoint: RemoteEndpoint, name: str, result: SyncResult
    ) -> bytes | None:
        """Download a file that may legitimately be absent (404 is silent)."""
        try:
            return await self._client.download_bytes(endpoint, name)
        except RemoteStatusError as e:
            if e.status_code == 404:
                logger.debug("%s%s not on server", endpoint.remote_path, name)
            else:
                result.add_error(name, e)
        except NavetteError as e:
            result.add_error(name, e)
        return None

    # -------------------------------------------------------------------------
    # Recursive tree sync
    # -------------------------------------------------------------------------

    async def upload_tree(
        self, local_dir: Path, endpoint: RemoteEndpoint, result: SyncResult
    ) -> None:
        """Upload a local directory recursively.

        The remote collection is created first (an existing one is fine).
        Entries starting with "." or "__" are skipped. Items are recorded
        in ``result`` as ``<remote path><name>``.

        Args:
            local_dir: Directory to upload.
            endpoint: Remote collection mirroring ``local_dir``.
            result: Accumulates uploaded items and errors.
        """
        await self._ensure_collection(endpoint)

        try:
            entries = list(local_dir.iterdir())
        except OSError as e:
            result.add_error(str(local_dir), f"read failed: {e}")
            return

        for path in entries:
            name = path.name
            if _is_skipped(name):
                continue

            if path.is_dir():
                await self.upload_tree(path, endpoint.child(name), result)
            else:
                await self._upload_file(
                    path, endpoint, result, f"{endpoint.remote_path}{name}"
                )

    async def download_tree(
        self,
        endpoint: RemoteEndpoint,
        local_dir: Path,
        result: SyncResult,
        validate: Validator | None = None,
    ) -> None:
        """Download a remote collection recursively.

        Existing local files are overwritten. A missing remote collection
        (404) is not an error.

        Args:
            endpoint: Remote collection to download.
            local_dir: Local directory mirroring ``endpoint``.
            result: Accumulates downloaded items and errors.
            validate: Optional check run on each file before writing it.
        """
        entries = await self._list(endpoint, result, optional=True)
        if entries is None:
            return

        for entry in entries:
            target = local_dir / entry.name
            item = f"{endpoint.remote_path}{entry.name}"

            if entry.is_collection:
                try:
                    target.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    result.add_error(item, f"cannot create directory: {e}")
                    continue
                await self.download_tree(endpoint.child(entry.name), target, result, validate)
            else:
                await self._download_file(
                    endpoint, entry.name, target, result, item, validate
                )

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def upload_accounts(
        self, endpoint: RemoteEndpoint, accounts_dir: Path
    ) -> SyncResult:
        """Upload every credential file of the accounts directory."""
        result = SyncResult()
        await self._ensure_collection(endpoint)

        for path in list_credential_files(accounts_dir):
            await self._upload_file(path, endpoint, result, path.name)

        return result

    async def download_accounts(
        self, endpoint: RemoteEndpoint, accounts_dir: Path
    ) -> SyncResult:
        """Download every remote credential file into the accounts directory.

        Files that are not valid JSON are rejected and the local copy is
        left as it was. Credential files are replaced atomically. A missing
        remote directory is an error: the configured remote path is wrong
        or nothing was ever pushed there.
        """
        result = SyncResult()

        try:
            accounts_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result.add_error(str(accounts_dir), f"cannot create directory: {e}")
            return result

        entries = await self._list(endpoint, result)
        for entry in entries or []:
            if entry.is_collection or not entry.name.endswith(".json"):
                continue
            await self._download_file(
                endpoint,
                entry.name,
                accounts_dir / entry.name,
                result,
                entry.name,
                validate_json,
                write_credential_bytes,
            )

        return result

    # -------------------------------------------------------------------------
    # Codex configuration
    # -------------------------------------------------------------------------

    async def upload_codex(
        self, endpoint: RemoteEndpoint, policy: SyncPolicy, codex_dir: Path
    ) -> SyncResult:
        """Upload the Codex directory parts selected by the policy."""
        result = SyncResult()
        codex = endpoint.child(CODEX_REMOTE_DIR)
        # MKCOL does not create intermediate collections
        await self._ensure_collection(endpoint)
        await self._ensure_collection(codex)

        if policy.sync_agents_doc:
            agents_doc = codex_dir / AGENTS_DOC
            if agents_doc.is_file():
                await self._upload_file(agents_doc, codex, result, AGENTS_DOC)

        if policy.sync_prompts:
            prompts_dir = codex_dir / PROMPTS_DIR
            if prompts_dir.is_dir():
                await self.upload_tree(prompts_dir, codex.child(PROMPTS_DIR), result)

        if policy.sync_skills:
            skills_dir = codex_dir / SKILLS_DIR
            if skills_dir.is_dir():
                await self._upload_skills(skills_dir, codex.child(SKILLS_DIR), result)

        if policy.touches_config:
            await self._upload_config(codex_dir / CONFIG_FILE, codex, policy, result)

        return result

    async def _upload_skills(
        self, skills_dir: Path, endpoint: RemoteEndpoint, result: SyncResult
    ) -> None:
        """Upload each skill bundle (one sub-directory per skill)."""
        await self._ensure_collection(endpoint)

        try:
            entries = list(skills_dir.iterdir())
        except OSError as e:
            result.add_error(str(skills_dir), f"read failed: {e}")
            return

        for path in entries:
            # .system holds bundled skills managed by Codex itself
            if not path.is_dir() or path.name.startswith(".") or path.name in SKIPPED_SKILL_DIRS:
                continue
            await self.upload_tree(path, endpoint.child(path.name), result)

    async def _upload_config(
        self,
        config_path: Path,
        endpoint: RemoteEndpoint,
        policy: SyncPolicy,
        result: SyncResult,
    ) -> None:
        if not config_path.is_file():
            return

        try:
            content = config_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            result.add_error(CONFIG_FILE, f"read failed: {e}")
            return

        filtered = filter_config(content, policy)
        if not filtered.strip():
            logger.debug("nothing to sync from %s", config_path)
            return

        try:
            await self._client.upload(endpoint, CONFIG_SYNC_FILE, filtered)
        except NavetteError as e:
            result.add_error(CONFIG_SYNC_FILE, e)
            return

        result.uploaded.append(CONFIG_SYNC_FILE)

    async def download_codex(
        self, endpoint: RemoteEndpoint, policy: SyncPolicy, codex_dir: Path
    ) -> SyncResult:
        """Download the Codex directory parts selected by the policy."""
        result = SyncResult()
        codex = endpoint.child(CODEX_REMOTE_DIR)

        try:
            codex_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result.add_error(str(codex_dir), f"cannot create directory: {e}")
            return result

        if policy.sync_agents_doc:
            content = await self._download_optional(codex, AGENTS_DOC, result)
            if content is not None:
                try:
                    (codex_dir / AGENTS_DOC).write_bytes(content)
                    result.downloaded.append(AGENTS_DOC)
                except OSError as e:
                    result.add_error(AGENTS_DOC, f"write failed: {e}")

        for enabled, name in (
            (policy.sync_prompts, PROMPTS_DIR),
            (policy.sync_skills, SKILLS_DIR),
        ):
            if not enabled:
                continue
            local_dir = codex_dir / name
            try:
                local_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                result.add_error(name, f"cannot create directory: {e}")
                continue
            await self.download_tree(codex.child(name), local_dir, result)

        if policy.touches_config:
            await self._download_config(codex, codex_dir / CONFIG_FILE, policy, result)

        return result

    async def _download_config(
        self,
        endpoint: RemoteEndpoint,
        config_path: Path,
        policy: SyncPolicy,
        result: SyncResult,
    ) -> None:
        content = await self._download_optional(endpoint, CONFIG_SYNC_FILE, result)
        if content is None:
            return

        try:
            remote = content.decode("utf-8")
            local = config_path.read_text(encoding="utf-8") if config_path.exists() else ""
        except (OSError, UnicodeDecodeError) as e:
            result.add_error(CONFIG_FILE, f"read failed: {e}")
            return

        merged = merge_config(local, remote, policy)
        if merged == local:
            logger.debug("%s already up to date", config_path)
            return

        try:
            config_path.write_text(merged, encoding="utf-8")
        except OSError as e:
            result.add_error(CONFIG_FILE, f"write failed: {e}")
            return

        result.downloaded.append(f"{CONFIG_FILE} (merged)")

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def push(
        self,
        endpoint: RemoteEndpoint,
        policy: SyncPolicy,
        accounts_dir: Path,
        codex_dir: Path,
        *,
        accounts: bool = True,
        codex: bool = True,
    ) -> SyncResult:
        """Upload accounts and Codex configuration.

        Args:
            endpoint: Remote root for this installation.
            policy: Codex categories to upload.
            accounts_dir: Local credential files.
            codex_dir: Local Codex directory.
            accounts: Include credential files.
            codex: Include Codex configuration.

        Returns:
            Combined SyncResult for both parts.
        """
        result = SyncResult()
        if accounts:
            result.merge(await self.upload_accounts(endpoint, accounts_dir))
        if codex:
            result.merge(await self.upload_codex(endpoint, policy, codex_dir))
        logger.info(
            "push finished: %d uploaded, %d errors", len(result.uploaded), len(result.errors)
        )
        return result

    async def pull(
        self,
        endpoint: RemoteEndpoint,
        policy: SyncPolicy,
        accounts_dir: Path,
        codex_dir: Path,
        *,
        accounts: bool = True,
        codex: bool = True,
    ) -> SyncResult:
        """Download accounts and Codex configuration (remote wins).

        Same arguments as push().
        """
        result = SyncResult()
        if accounts:
            result.merge(await self.download_accounts(endpoint, accounts_dir))
        if codex:
            result.merge(await self.download_codex(endpoint, policy, codex_dir))
        logger.info(
            "pull finished: %d downloaded, %d errors",
            len(result.downloaded),
            len(result.errors),
        )
        return result

    async def test_connection(self, endpoint: RemoteEndpoint) -> str:
        """Check that the server is reachable and the credentials work.

        A missing remote directory is created on the spot.

        Returns:
            Human-readable success message.

        Raises:
            AuthenticationError: If the server rejects the credentials.
            RemoteStatusError: For any other unexpected status.
            TransportError: If the server cannot be reached.
        """
        status = await self._client.probe(endpoint)

        if 200 <= status < 300:
            return "Connection successful"

        if status == 404:
            await self._client.ensure_collection(endpoint)
            return "Connection successful, remote directory created"

        if status == 401:
            raise AuthenticationError(
                "Authentication failed: check the username and app password", status
            )

        raise RemoteStatusError(f"Connection failed: HTTP {status}", status)
