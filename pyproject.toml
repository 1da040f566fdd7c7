[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pipeyard"
version = "0.1.0"
description = "Tenant-aware customer, inventory and work-order records for oilfield pipe yards"
requires-python = ">=3.10"
dependencies = []
keywords = ["inventory", "oil and gas", "work orders", "multi-tenant", "pipe yard", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business",
    "Topic :: Database",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pipeyard"]

[tool.pytest.ini_options]
addopts = "-ra"
