from setuptools import find_namespace_packages, setup

name = "dump_anon"
version = "0.3.0"
install_requires = [
    "aioprocessing",
    "bcrypt",
    "concurrent-log-handler",
    "Jinja2",
    "PyYAML",
    "sqlglot",
]
tests_require = [
    "pytest",
]


if __name__ == "__main__":
    setup(
        name=name,
        version=version,
        description="SQL dump masking filter",
        classifiers=[
            "Intended Audience :: Developers",
            "Intended Audience :: System Administrators",
            "Programming Language :: Python",
            "Programming Language :: Python :: 3",
            "Topic :: Database",
        ],
        license="MIT",
        keywords="sql dump masking anonymization mysqldump",
        python_requires=">=3.8",
        packages=find_namespace_packages(include=["dump_anon", "dump_anon.*"]),
        install_requires=install_requires,
        extras_require={"test": tests_require},
        entry_points={
            "console_scripts": [
                "dump_anon = dump_anon.cli:main",
            ],
        },
    )
