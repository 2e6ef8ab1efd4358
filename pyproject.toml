[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "railsim"
version = "0.1.0"
description = "Readers for train simulator route and rolling-stock files, with air brake and Morse telegraph models"
requires-python = ">=3.10"
dependencies = []
keywords = ["train", "simulator", "railway", "air brake", "morse", "msts", "ace"]
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
    "Topic :: Games/Entertainment :: Simulation",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["railsim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
