"""Infrastructure layer package: OS process plumbing and configuration."""
