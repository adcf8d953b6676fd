#!/usr/bin/env python
"""Seed the catalog with free sample songs.

Downloads each sample's audio and artwork and runs them through the same
upload pipeline as user uploads (including cleanup on failure), with no
owner. A failed sample is reported and skipped; the rest still run.

Constraints:
- Refuses to run in staging or prod (SONGBIRD_ENV check)
- Not idempotent: each run adds new rows and new storage objects
- Never runs automatically (manual invocation only)

Usage:
    cd python && DATABASE_URL=... SUPABASE_URL=... SUPABASE_SERVICE_KEY=... \\
        uv run python ../scripts/seed_songs.py
"""

import os
import sys
from urllib.parse import urlparse

FREE_SONGS = [
    {
        "title": "Acoustic Breeze",
        "artist": "Bensound",
        "song_url": "https://www2.cs.uic.edu/~i101/SoundFiles/BabyElephantWalk60.wav",
        "image_url": "https://images.unsplash.com/photo-1493225457124-a3eb161ffa5f?w=500&h=500&fit=crop&auto=format",
    },
    {
        "title": "Happy Rock",
        "artist": "Bensound",
        "song_url": "https://www2.cs.uic.edu/~i101/SoundFiles/StarWars60.wav",
        "image_url": "https://images.unsplash.com/photo-1470225620780-dba8ba36b745?w=500&h=500&fit=crop&auto=format",
    },
    {
        "title": "Jazzy Frenchy",
        "artist": "Bensound",
        "song_url": "https://www2.cs.uic.edu/~i101/SoundFiles/PinkPanther60.wav",
        "image_url": "https://images.unsplash.com/photo-1508700115892-45ecd05ae2ad?w=500&h=500&fit=crop&auto=format",
    },
    {
        "title": "Memories",
        "artist": "Bensound",
        "song_url": "https://www2.cs.uic.edu/~i101/SoundFiles/gettysburg10.wav",
        "image_url": "https://images.unsplash.com/photo-1459749411175-04bf5292ceea?w=500&h=500&fit=crop&auto=format",
    },
    {
        "title": "Ukulele",
        "artist": "Bensound",
        "song_url": "https://www2.cs.uic.edu/~i101/SoundFiles/CantinaBand60.wav",
        "image_url": "https://images.unsplash.com/photo-1511671782779-c97d3d27a1d4?w=500&h=500&fit=crop&auto=format",
    },
]


def _download(client, url: str):
    from songbird.services.upload import UploadedFile

    response = client.get(url)
    response.raise_for_status()
    filename = os.path.basename(urlparse(url).path) or "download"
    return UploadedFile(
        filename=filename,
        content_type=response.headers.get("content-type"),
        data=response.content,
    )


def main():
    # 1. Environment check (hard fail in staging/prod)
    songbird_env = os.getenv("SONGBIRD_ENV", "local")
    if songbird_env not in ("local", "test"):
        print(f"ERROR: seed_songs.py refuses to run in SONGBIRD_ENV={songbird_env}")
        sys.exit(1)

    if not os.getenv("DATABASE_URL"):
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    import httpx

    from songbird.db.session import get_session_factory
    from songbird.logging import configure_logging
    from songbird.services.upload import SongUpload, run_upload_pipeline
    from songbird.storage.client import get_storage_client

    configure_logging(json_format=False)
    storage = get_storage_client()
    db = get_session_factory()()

    created = 0
    try:
        with httpx.Client(timeout=60.0, follow_redirects=True) as client:
            for sample in FREE_SONGS:
                try:
                    song_file = _download(client, sample["song_url"])
                    image_file = _download(client, sample["image_url"])
                except httpx.HTTPError as e:
                    print(f"✗ {sample['title']}: download failed ({e})")
                    continue

                result = run_upload_pipeline(
                    db,
                    storage,
                    owner_id=None,
                    upload=SongUpload(
                        title=sample["title"],
                        artist=sample["artist"],
                        song_file=song_file,
                        image_file=image_file,
                    ),
                )
                if result.ok:
                    created += 1
                    print(f"✓ Created: {sample['title']} (id={result.data.id})")
                else:
                    print(f"✗ {sample['title']}: {result.message} [{result.failed_step}]")
    finally:
        db.close()

    print()
    print(f"Seeded {created}/{len(FREE_SONGS)} songs")


if __name__ == "__main__":
    main()
