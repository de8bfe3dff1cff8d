[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "smtptables"
version = "5.7.2"
description = "BER encoding, LDAP search filters and URLs, a small LDAP client and key/value configuration files for mail transfer agent lookup tables"
requires-python = ">=3.10"
keywords = ["smtp", "mail", "mta", "ldap", "ber", "asn.1", "lookup tables"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Email :: Mail Transport Agents",
    "Topic :: System :: Systems Administration :: Authentication/Directory :: LDAP",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["smtptables"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
