"""Setup script for the accord launcher."""

import os
import subprocess
import sys
from pathlib import Path
from setuptools import find_packages, setup
from setuptools.command.build_py import build_py

# The Rust crate ships inside the package; the launcher runs cargo against it.
CRATE_FILES = ["Cargo.toml", "Cargo.lock", "build.rs", "src/*.rs", "src/**/*.rs"]


class CargoBuildPy(build_py):
    """build_py command that can also precompile the native binary with cargo."""

    def run(self) -> None:
        super().run()
        if should_build_native():
            build_native(Path(self.build_lib))


def build_native(build_lib: Path) -> None:
    """Compile the crate copied into ``build_lib`` so target/ ships with it."""
    package_dir = build_lib / "accord"

    # The crate must sit beside the launcher for `cargo build` to find it
    cargo_toml = package_dir / "Cargo.toml"
    if not cargo_toml.exists():
        raise RuntimeError(
            f"Cargo.toml not found at {cargo_toml}. "
            f"ACCORD_BUILD_NATIVE requires the accord crate sources next to the launcher."
        )

    # Run from build_lib so `-m accord` imports the copy being built
    cmd = [sys.executable, "-m", "accord", "build", "--verbosity", "1"]
    print(f"Running: {' '.join(cmd)} in {build_lib}")
    result = subprocess.run(cmd, cwd=build_lib, capture_output=True, text=True)

    if result.returncode != 0:
        print(f"Cargo build failed with return code {result.returncode}", file=sys.stderr)
        print(f"stdout: {result.stdout}", file=sys.stderr)
        print(f"stderr: {result.stderr}", file=sys.stderr)
        raise RuntimeError(f"Cargo build failed: {result.stderr}")


def should_build_native() -> bool:
    """Get whether to build the native binary from ACCORD_BUILD_NATIVE, defaulting to no."""
    return os.environ.get("ACCORD_BUILD_NATIVE", "0") == "1"


if __name__ == "__main__":
    setup(
        name="accord",
        version="0.1.0",
        description="Launcher that builds and runs the accord native binary with cargo",
        python_requires=">=3.10",
        packages=find_packages(exclude=["tests", "tests.*"]),
        package_data={"accord": CRATE_FILES},
        install_requires=[],
        extras_require={"test": ["pytest>=7"]},
        entry_points={"console_scripts": ["accord=accord.cli:main"]},
        cmdclass={"build_py": CargoBuildPy},
        zip_safe=False,
    )
