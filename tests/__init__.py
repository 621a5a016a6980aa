"""
Edgework Test Suite

Tests run against a scripted fake CDN API (see conftest.FakeCdnApi), so no
network access or credentials are needed.
"""
