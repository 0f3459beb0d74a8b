"""Video Asset Service backend.

Manages uploaded video assets from raw upload through multi-resolution
transcoding, renaming and deletion.

Modules:
    - core: Configuration, database, logging, storage, Celery setup
    - modules.video: Video records, path layout, rename and delete
    - modules.transcoding: FFmpeg probing and per-resolution encoding
"""

__version__ = "0.1.0"
