"""Testing utilities and fakes for the images importer."""

from .fakes import (
    FakeHttpSession,
    FakeLogger,
    FakeRecordStore,
    FakeRemoteFile,
    FakeResponse,
    TestEnvironment,
    build_descriptor,
    create_test_image,
    setup_test_http_environment,
)

__all__ = [
    "FakeHttpSession",
    "FakeLogger",
    "FakeRecordStore",
    "FakeRemoteFile",
    "FakeResponse",
    "TestEnvironment",
    "build_descriptor",
    "create_test_image",
    "setup_test_http_environment",
]
