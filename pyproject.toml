[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "heartring"
version = "0.1.0"
description = "Discrete-event simulation of a doubly linked heartbeat ring (VRing) failure detector"
requires-python = ">=3.10"
dependencies = []
keywords = ["simulation", "discrete-event", "failure-detection", "heartbeat", "distributed-systems"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
doubly-vring = "heartring.doubly_vring:main"
cisj = "heartring.cisj:main"

[tool.hatch.build.targets.wheel]
packages = ["heartring"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
