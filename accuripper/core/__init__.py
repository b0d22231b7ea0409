"""
Core application engine for the ingestion and retrieval pipelines.

The `Ripper` discovers channels and runs one `ChannelPoller` per channel,
each feeding novel tracks through the `NoveltyFilter` into the store. The
`DownloadManager` scans the store and hands every track to a
`TrackDownloader` through a bounded worker pool.
"""
