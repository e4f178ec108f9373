[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "beamkit"
version = "0.1.0"
description = "Boot-info parsing, vCPU exit decoding, PCI/virtio probing and process layout logic for a microkernel hypervisor root task"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "microkernel",
    "hypervisor",
    "vcpu",
    "pci",
    "virtio",
    "acpi",
    "bootinfo",
    "elf",
]
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
    "Topic :: System :: Operating System",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["beamkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
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
