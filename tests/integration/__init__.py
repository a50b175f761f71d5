# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for end-to-end stream pipelines.

This package contains tests that combine sources, several intermediate
stages, collectors and configuration in one pipeline.
"""
