from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="sql2redis",
    version="0.1.0",
    description="sql2redis: copy SQL tables into Redis keys",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["core", "core.*", "config", "extensions", "extensions.*", "tools"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Database",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "sql2redis=tools.sql_to_redis:main",
        ],
    },
    include_package_data=True,
)
