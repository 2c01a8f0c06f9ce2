[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "natskafka"
version = "0.1.0"
description = "Building blocks for moving messages from NATS to Kafka: least-bytes partitioning, SCRAM authentication, Kafka client security settings, schema-registry framing and connector statistics."
requires-python = ">=3.10"
dependencies = [
    "jsonschema",
]
keywords = ["nats", "kafka", "schema-registry", "scram", "sasl", "partitioner", "statistics"]
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
    "Topic :: System :: Networking",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["natskafka"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
