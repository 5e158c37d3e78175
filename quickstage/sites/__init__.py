"""Static site hosting: host and path mapping, content resolution and archive ingestion."""
