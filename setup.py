from setuptools import setup


setup(
    name="alloc-doctor",
    version="0.1.0",
    description="Local validation and rule inference for client, worker and task allocation data",
    packages=["alloc_doctor"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
    ],
    entry_points={
        "console_scripts": [
            "alloc-doctor=alloc_doctor.cli:main",
        ]
    },
)
