"""Setup configuration for portsync"""

from setuptools import setup, find_packages

setup(
    name="github-port-sync",
    version="0.1.0",
    description=(
        "CLI tool that syncs GitHub engineering metrics (onboarding, pull "
        "requests, workflows) into a Port developer portal."
    ),
    author="GitHub Port Sync Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "github-port-sync=portsync.main:main",
        ],
    },
)
