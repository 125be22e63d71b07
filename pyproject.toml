[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tgroute"
version = "0.1.0"
description = "Update routing, filters, callback data and chat sessions for Telegram bots"
requires-python = ">=3.10"
dependencies = []
keywords = ["telegram", "bot", "router", "middleware", "filters", "session", "callback-data"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["tgroute"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
