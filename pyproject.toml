[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ircserv"
version = "1.0.0"
description = "A small single-threaded IRC server with password registration, channels and topics"
requires-python = ">=3.10"
dependencies = []
keywords = ["irc", "chat", "server", "network"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat :: Internet Relay Chat",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ircserv = "ircserv.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ircserv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
