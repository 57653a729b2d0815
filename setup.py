from setuptools import setup, find_packages

setup(
    name='sdanalysis',
    version='0.2',
    packages=find_packages(include=['sdanalysis', 'sdanalysis.*']),
    python_requires='>=3.9',
    install_requires=[
        'numpy',
        'scipy',
        'pandas',
        'matplotlib',
        'freud-analysis',
        'scikit-learn',
        'tqdm',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
