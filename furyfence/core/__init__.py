"""Shared infrastructure.

Modules:
    store           JSON-array record files with per-file locking
    paths           data/site directory resolution
    secrets         notifier credential registry
    security        rate limiting + response headers
    startup_checks  boot-time self test
"""
