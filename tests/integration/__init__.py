# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests over LMAY projects written to disk."""
