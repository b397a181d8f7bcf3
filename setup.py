from setuptools import setup

setup(
    name='pyenrich',
    version='0.1.0',
    description='Normalize genomic signals around target regions into matrices for enriched heatmaps',
    install_requires=['pandas', 'numpy', 'scipy', 'statsmodels'],
    extras_require={'test': ['pytest']},
    packages=['pyenrich'],
    python_requires='>=3.10',
    zip_safe=False
)
