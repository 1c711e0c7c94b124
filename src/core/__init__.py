"""Core domain package for the squabble agent.

Core holds trigger detection, content extraction, intent interpretation and
action execution without any Telegram, HTTP or language-model code, keeping
the dispatch logic portable and testable with fakes.
"""
