"""
Test suite for the Xray report publisher.

Unit tests mock the HTTP session or the whole tracker client; no Jira
instance is needed.
"""
