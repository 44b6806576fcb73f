# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the ward compliance tracker.

This package contains pure business logic functions with no side effects:
scoring, issue lifecycle rules, review decisions and the fixed catalogs.
"""
