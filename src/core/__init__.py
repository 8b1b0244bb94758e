"""Core domain package for doppel.

Core contains pacing, dedup, identity matching, correction and reply logic
without any WhatsApp, OpenAI or storage-specific code, keeping the behavior
portable and testable.
"""
