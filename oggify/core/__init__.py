"""
Core application engine for resolving identifiers and orchestrating downloads.

`DownloadManager` drives a run: it feeds input lines through the parser and
`CatalogResolver` into the `GroupingStore`, then drains the store and hands
each item to the `TrackLoader` and the packaging step.
"""
