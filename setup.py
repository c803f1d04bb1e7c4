from setuptools import find_packages, setup

setup(
    name="jaxmarginals",
    version="0.0",
    description="Marginal covariances for factor graphs in Jax",
    author="brentyi",
    author_email="brentyi@berkeley.edu",
    license="BSD",
    packages=find_packages(include=["jaxmarginals", "jaxmarginals.*"]),
    package_data={"jaxmarginals": ["py.typed"]},
    python_requires=">=3.10",
    install_requires=[
        "tyro",
        "jax>=0.4.25",
        "jaxlib",
        "jaxlie>=1.3.0",
        "jax_dataclasses>=1.6.0",
        "loguru",
        "numpy",
        "overrides",
        "scipy",
        "termcolor",
    ],
    extras_require={
        "testing": [
            "pytest",
            "pytest-cov",
        ],
        "type-checking": [
            "mypy",
            "types-termcolor",
        ],
    },
)
