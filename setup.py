#!/usr/bin/python3
# Setup file for looseleaf
# Copyright (C) 2026 The looseleaf authors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

tests_require = ["pytest"]

setup(
    name="looseleaf",
    version="0.1.0",
    description="Content-addressable git object storage with smart HTTP clone",
    license="Apache-2.0 OR GPL-2.0-or-later",
    python_requires=">=3.9",
    packages=["looseleaf"],
    package_data={"": ["py.typed"]},
    install_requires=["urllib3>=1.25"],
    extras_require={"test": tests_require},
    entry_points={"console_scripts": ["looseleaf=looseleaf.cli:_main"]},
)
