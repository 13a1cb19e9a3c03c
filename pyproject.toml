[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "clusterdoctor"
version = "0.1.0"
description = "Analyzers that find misconfigured Kubernetes resources in an in-memory cluster model and report or explain them"
requires-python = ">=3.10"
keywords = ["kubernetes", "diagnostics", "analysis", "cluster", "troubleshooting"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "termcolor",
    "tqdm",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["clusterdoctor"]

[tool.pytest.ini_options]
addopts = "-ra"
