"""
This package contains the scheduling layers of the Video Clipper.

`BatchScheduler` pulls source videos through in fixed-size batches and runs a
bounded number of them at once. For each video, `VariantScheduler` runs a
bounded number of variants at once through the shared `TranscodePipeline`.
Both build on `BoundedTaskGroup`, a thread pool with a hard concurrency
ceiling and group-wide cancellation.
"""
