"""Shell commands exposing TabShaper functionalities.

This module contains the shell commands that can be used to interact with TabShaper.

FShape (file shape)
===================

``tabshaper-fshape`` transforms the data of a file through a pipeline::

    tabshaper-fshape sales.csv --filter "Price:gt:50" --sort "Price:desc" --formula "Total=Quantity*Price"

It can be tested against example data, generated in the ``data`` directory
by running ``python examples/generate_test_data.py``, with the following command::

    tabshaper-fshape data/sales.csv --pivot "Product:Quantity,Price:sum" --formula "Share=SUM(Quantity_sum)"

Instead of providing the stages on the command line, the whole pipeline
can be loaded from a JSON file in the form produced by
:meth:`tabshaper.pipeline.Pipeline.to_config`::

    tabshaper-fshape sales.csv --config pipeline.json --output result.parquet
"""
