"""
Setup script for densela

densela ships no compiled code: CBLAS and LAPACKE are bound at runtime
through ctypes, from the OpenBLAS bundled with numpy/scipy wheels or from a
system library.
"""

from pathlib import Path
from setuptools import setup, find_packages


# Read version from src/densela/__init__.py
def get_version():
    version_file = Path("src/densela/__init__.py")
    if version_file.exists():
        for line in version_file.read_text().splitlines():
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.1.0"


# Read long description from README
def get_long_description():
    readme = Path("README.md")
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


setup(
    name="densela",
    version=get_version(),
    description="Dense vectors and matrices with naive and runtime-bound CBLAS/LAPACKE kernels",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "numpy>=1.21",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "scipy>=1.9",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
    zip_safe=False,
)
