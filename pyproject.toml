[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "usagebar"
version = "0.1.0"
description = "Usage, rate-limit and cost tracking for AI coding assistants"
requires-python = ">=3.11"
dependencies = []
keywords = ["usage", "cost", "rate-limit", "monitoring", "claude", "codex"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["usagebar"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
