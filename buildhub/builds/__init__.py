"""
Builds app: build records, orchestration, remote CI sync and artifact
storage.
"""
