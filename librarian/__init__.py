"""Library reconciliation: crawl import paths, diff against the asset catalog, drive ingest/offline jobs."""
