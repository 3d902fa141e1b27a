"""Setup script for the rollcall face-matching package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README if it exists
readme_file = Path(__file__).parent / "README.md"
long_description = ""
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")

setup(
    name="rollcall-facematch",
    version="0.1.0",
    description="Embedding store and face matching engine for school attendance",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Rollcall Team",
    packages=find_packages(exclude=["tests*", "docs*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.26.0",
        "pandas>=2.2.0",
        "pyarrow>=15.0.0",
        "pyyaml>=6.0.0",
        "scipy",
        "tqdm>=4.66.0",
        "opencv-python>=4.9.0",
    ],
    extras_require={
        "arcface": [
            "insightface>=0.7.3",
            "onnxruntime>=1.16.3",
        ],
        "dev": [
            "pytest>=7.4.0",
            "black",
            "flake8",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "rollcall-enroll=scripts.enroll_embeddings:main",
            "rollcall-search=scripts.search_embeddings:main",
            "rollcall-compare=scripts.compare_embeddings:main",
            "rollcall-resolve=scripts.resolve_frame:main",
            "rollcall-audit=scripts.audit_store:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
