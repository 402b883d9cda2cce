from setuptools import setup, find_packages

setup(
    name="pauliprop",
    version="0.1.0",
    description="Heisenberg-picture Pauli propagation of observables through quantum circuits",
    packages=find_packages(exclude=("tests", "integration_test")),
    python_requires=">=3.11",
    install_requires=[
        "numpy",
        "qiskit",
        "tqdm",
    ],
    extras_require={
        "test": [
            "pytest",
            "scipy",
        ],
    },
    zip_safe=False,
)
