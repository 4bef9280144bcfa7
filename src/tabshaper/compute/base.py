"""Base classes and interfaces for the Compute Engine

This module defines the base components that are
necessary to represent a transformation plan and execute it.
"""

import abc
from typing import Any

Row = dict[str, Any]
"""A row of the dataset, maps column names to scalar values."""


class PlanNode(abc.ABC):
    """A node of a transformation plan.

    The transformation plan is represented as a chain
    of nodes. Each node is a stage in the execution
    and the previous stage is the child of the next one.

    For example a simple plan might involve
    loading data and filtering it::

        RowsDataSource -> FilterNode(filters)

    That would be a plan where the last step
    is filtering, and the RowsDataSource is the child
    of the filter node.

    Each Node consumes the list of rows emitted by its child
    and emits a **new** list of rows. Nodes never modify
    the rows or the list they receive, so the rows emitted
    by a node can be safely shared with other consumers.

    The base `PlanNode` class does nothing
    and purely acts as the interface that all nodes
    must implement. Actual work will be done
    in the subclasses.

    For example a simple node that takes data
    and just forwards it as is after printing
    its content can be implemented as::

        class DebugDataNode(PlanNode):
            def __init__(self, child):
                self.child = child

            def rows(self):
                rows = self.child.rows()
                print(rows)
                return list(rows)

            def __str__(self):
                return f"DebugDataNode({self.child})"
    """

    @abc.abstractmethod
    def rows(self) -> list[Row]:
        """Emits the rows for the next node.

        Each plan node is expected to be able to
        generate data that has to be provided to the next
        node in the plan.

        Usually this happens by consuming data from its
        child node, transforming it somehow, and returning
        it to the next consumer.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...
