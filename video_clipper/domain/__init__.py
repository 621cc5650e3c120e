"""
Core domain models of the Video Clipper.

Modules:
    exceptions.py: The error taxonomy raised across the pipeline.
    models.py:     Immutable value objects: trim strategies, quality tiers,
                   variant specs, clip windows, quality bundles and outcomes.
    media.py:      `SourceVideo`, a source file with a lazily probed duration.
"""
