[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "npdkit"
version = "0.1.0"
description = "Node health helpers: log start-time windows, OS detection, process-group control, in-process metrics, Prometheus text parsing, kernel cmdline/module inspection and a download bandwidth check"
requires-python = ">=3.10"
dependencies = [
    "psutil",
]
keywords = [
    "monitoring",
    "node",
    "health",
    "metrics",
    "prometheus",
    "kernel",
    "bandwidth",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
npd-nethealth = "npdkit.nethealth:main"

[tool.hatch.build.targets.wheel]
packages = ["npdkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
