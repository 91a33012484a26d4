"""Domain model mirrored from projected webhook events."""

from __future__ import annotations

from .storage import Commit, Issue, PullRequest, Repository, init_domain_storage

__all__ = ["Commit", "Issue", "PullRequest", "Repository", "init_domain_storage"]
