"""Business logic services.

This package contains the song sagas (upload, deletion), the record store
gateway (songs), likes, search, and the shared saga runner. Route handlers
call exactly one service function per request.
"""
