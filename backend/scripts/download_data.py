"""Download the feature and address index snapshots into the data directory.

Usage:
    python -m scripts.download_data [--data-dir DIR] [--force]

Each file is tried against a list of candidate URLs in order: an explicit URL
from the environment, ``DATA_URL_PREFIX``, the storage bucket, then raw
GitHub. A file that cannot be downloaded is reported and skipped; the app
still starts without it (features fall back to the bundled sample).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

import requests

from settings import settings
from storage.snapshot_storage import CHUNK_SIZE, SnapshotStorage

logger = logging.getLogger("download_data")

GITHUB_REPO = os.getenv("GITHUB_REPO", "MarcosSantos-1/limpebras-pt")
GITHUB_BRANCH = os.getenv("GITHUB_BRANCH", "master")
DATA_URL_PREFIX = os.getenv("DATA_URL_PREFIX")
FIREBASE_STORAGE_BUCKET = os.getenv("FIREBASE_STORAGE_BUCKET", "limpebras-pt.firebasestorage.app")

# A file at least this large is assumed to be a real snapshot already.
EXISTING_MIN_BYTES = 1000
# Anything smaller than this is an error page, not data.
DOWNLOAD_MIN_BYTES = 100


@dataclass
class SnapshotFile:
    name: str
    repo_path: str
    local_path: Path
    external_url: Optional[str] = None


def default_files(data_dir: Optional[Path] = None) -> List[SnapshotFile]:
    features_path = settings.FEATURES_JSON_PATH
    index_path = settings.ADDRESS_INDEX_PATH
    if data_dir is not None:
        features_path = data_dir / "features.json"
        index_path = data_dir / "addressIndex.json"
    return [
        SnapshotFile("features.json", "data/features.json", features_path, os.getenv("FEATURES_JSON_URL")),
        SnapshotFile("addressIndex.json", "data/addressIndex.json", index_path, os.getenv("ADDRESS_INDEX_URL")),
    ]


def candidate_urls(file: SnapshotFile) -> List[str]:
    urls: List[str] = []
    if file.external_url:
        urls.append(file.external_url)
    if DATA_URL_PREFIX:
        urls.append(f"{DATA_URL_PREFIX.rstrip('/')}/{file.name}")
    urls.append(f"https://storage.googleapis.com/{FIREBASE_STORAGE_BUCKET}/{file.repo_path}")
    urls.append(
        f"https://firebasestorage.googleapis.com/v0/b/{FIREBASE_STORAGE_BUCKET}/o/"
        f"{quote(file.repo_path, safe='')}?alt=media"
    )
    urls.append(f"https://raw.githubusercontent.com/{GITHUB_REPO}/{GITHUB_BRANCH}/{file.repo_path}")
    urls.append(f"https://github.com/{GITHUB_REPO}/raw/{GITHUB_BRANCH}/{file.repo_path}")
    return urls


def download_file(
    file: SnapshotFile,
    storage: SnapshotStorage,
    session: requests.Session,
    force: bool = False,
    timeout: float = 60.0,
) -> bool:
    """Fetch one snapshot. Returns True if the file is present afterwards."""
    if not force and storage.file_size(file.local_path) > EXISTING_MIN_BYTES:
        size_mb = storage.file_size(file.local_path) / 1024 / 1024
        logger.info("%s already present (%.2f MB), skipping", file.name, size_mb)
        return True

    for url in candidate_urls(file):
        logger.info("Trying %s from %s", file.name, url[:80])
        try:
            with session.get(url, stream=True, timeout=timeout) as resp:
                resp.raise_for_status()
                saved = storage.write_snapshot(
                    file.local_path,
                    resp.iter_content(chunk_size=CHUNK_SIZE),
                    min_bytes=DOWNLOAD_MIN_BYTES,
                )
        except (requests.RequestException, OSError) as exc:
            logger.debug("Download of %s from %s failed: %s", file.name, url, exc)
            continue

        if saved is None:
            logger.debug("Download of %s from %s too small, trying next source", file.name, url)
            continue
        size = storage.file_size(saved)
        logger.info("%s downloaded (%.2f MB)", file.name, size / 1024 / 1024)
        return True

    logger.warning(
        "Could not download %s. The app will run without it; set FEATURES_JSON_URL / "
        "ADDRESS_INDEX_URL or DATA_URL_PREFIX to point at the hosted snapshots.",
        file.name,
    )
    return False


def main(argv: Optional[List[str]] = None) -> int:
    if not logger.handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser(description="Download map data snapshots.")
    parser.add_argument("--data-dir", default=None, help="Target directory (defaults to configured paths).")
    parser.add_argument("--force", action="store_true", help="Download even if the file already exists.")
    parser.add_argument("--timeout", type=float, default=60.0)
    args = parser.parse_args(argv)

    data_dir = Path(args.data_dir) if args.data_dir else None
    storage = SnapshotStorage(data_dir or settings.DATA_DIR)
    logger.info("Downloading data snapshots...")
    with requests.Session() as session:
        ok = [
            download_file(f, storage, session, force=args.force, timeout=args.timeout)
            for f in default_files(data_dir)
        ]
    logger.info("Done: %d/%d snapshots available", sum(ok), len(ok))
    # Missing data never fails the build
    return 0


if __name__ == "__main__":
    sys.exit(main())
