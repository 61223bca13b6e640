import setuptools

setuptools.setup(
    name="fwgen",
    version="1.0.0",
    description=("Full flash image generator for routers"),
    license="Apache Software License",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        'click',
        'intelhex>=2.2.1',
        'PyYAML>=5.1',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        "console_scripts": ["fwgen=fwgen.main:fwgen"]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Development Status :: 4 - Beta",
        "Topic :: Software Development :: Build Tools",
        "License :: OSI Approved :: Apache Software License",
    ],
)
