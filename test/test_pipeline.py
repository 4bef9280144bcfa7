import pytest

from tabshaper import Pipeline, PipelineConfigError
from tabshaper.compute import (
    AggregateNode,
    AggregationConfig,
    FilterConfig,
    FilterNode,
    FormulaNode,
    PivotConfig,
    PivotNode,
    RowsDataSource,
    SortConfig,
    SortNode,
)

ROWS = [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}, {"a": 3, "b": "x"}]


@pytest.fixture
def pipeline():
    pipeline = Pipeline()
    pipeline.load(ROWS, ["a", "b"])
    return pipeline


def test_end_to_end_scenario(pipeline):
    pipeline.add_filter(FilterConfig("b", "equals", "x"))
    assert pipeline.transformed_rows == [{"a": 1, "b": "x"}, {"a": 3, "b": "x"}]

    pipeline.set_sort([SortConfig("a", "desc")])
    assert pipeline.transformed_rows == [{"a": 3, "b": "x"}, {"a": 1, "b": "x"}]

    pipeline.add_formula("len_b", "LEN(b)")
    assert pipeline.transformed_rows == [
        {"a": 3, "b": "x", "len_b": 1},
        {"a": 1, "b": "x", "len_b": 1},
    ]
    assert pipeline.columns == ["a", "b", "len_b"]


def test_load_profiles_and_keeps_source(pipeline):
    assert [p.type for p in pipeline.profiles] == ["number", "string"]
    assert pipeline.transformed_rows == ROWS
    pipeline.add_formula("c", "a * 2")
    assert pipeline.raw_rows == ROWS
    assert "c" not in ROWS[0]


def test_profiles_only_recomputed_on_load(pipeline):
    profiles = pipeline.profiles
    pipeline.add_filter(FilterConfig("b", "equals", "y"))
    assert pipeline.profiles is profiles
    pipeline.load([{"z": "yes"}])
    assert [(p.name, p.type) for p in pipeline.profiles] == [("z", "boolean")]


def test_load_keeps_configuration(pipeline):
    pipeline.add_filter(FilterConfig("b", "equals", "x"))
    pipeline.load([{"a": 5, "b": "x"}, {"a": 6, "b": "z"}])
    assert pipeline.transformed_rows == [{"a": 5, "b": "x"}]


def test_stage_order_filter_before_aggregation(pipeline):
    pipeline.add_filter(FilterConfig("b", "equals", "x"))
    pipeline.set_aggregation(AggregationConfig("a", "count"))
    assert pipeline.transformed_rows == [
        {"a": "1", "_count": 1, "_value": 1},
        {"a": "3", "_count": 1, "_value": 1},
    ]

    # Applying the aggregation first and filtering afterwards gives a different result.
    reordered = FilterNode(
        [FilterConfig("b", "equals", "x")],
        AggregateNode(AggregationConfig("a", "count"), RowsDataSource(ROWS)),
    ).rows()
    assert reordered == []
    assert reordered != pipeline.transformed_rows


def test_formulas_see_pivot_columns(pipeline):
    pipeline.set_pivot(PivotConfig(rows=["b"], values=["a"], aggregation="sum"))
    pipeline.add_formula("running", "SUM(a_sum)")
    assert pipeline.transformed_rows == [
        {"b": "x", "a_sum": 4.0, "running": 4.0},
        {"b": "y", "a_sum": 2.0, "running": 6.0},
    ]
    assert pipeline.columns == ["b", "a_sum", "running"]


def test_sort_happens_after_filter_and_before_aggregation(pipeline):
    pipeline.set_sort([SortConfig("a", "desc")])
    pipeline.set_aggregation(AggregationConfig("b", "count"))
    assert [row["b"] for row in pipeline.transformed_rows] == ["x", "y"]
    pipeline.set_sort([SortConfig("a", "asc")])
    assert [row["b"] for row in pipeline.transformed_rows] == ["x", "y"]
    pipeline.set_sort([SortConfig("b", "desc")])
    assert [row["b"] for row in pipeline.transformed_rows] == ["y", "x"]


def test_plan_structure(pipeline):
    assert isinstance(pipeline.plan(), RowsDataSource)

    pipeline.add_filter(FilterConfig("b", "equals", "x"))
    pipeline.toggle_sort("a")
    pipeline.set_aggregation(AggregationConfig("a", "sum"))
    pipeline.set_pivot(PivotConfig(rows=["a"], values=["_value"]))
    pipeline.add_formula("f", "ROW()")

    node = pipeline.plan()
    expected = [FormulaNode, PivotNode, AggregateNode, SortNode, FilterNode, RowsDataSource]
    for node_class in expected:
        assert isinstance(node, node_class)
        node = getattr(node, "child", None)


def test_inactive_pivot_not_in_plan(pipeline):
    pipeline.set_pivot(PivotConfig(rows=["a"]))
    assert isinstance(pipeline.plan(), RowsDataSource)
    assert pipeline.transformed_rows == ROWS


def test_toggle_sort_cycle(pipeline):
    pipeline.toggle_sort("b")
    pipeline.toggle_sort("a")
    assert pipeline.sort == [SortConfig("b", "asc"), SortConfig("a", "asc")]

    pipeline.toggle_sort("b")
    assert pipeline.sort == [SortConfig("b", "desc"), SortConfig("a", "asc")]
    assert [row["a"] for row in pipeline.transformed_rows] == [2, 1, 3]

    pipeline.toggle_sort("b")
    assert pipeline.sort == [SortConfig("a", "asc")]

    pipeline.clear_sort()
    assert pipeline.sort == []
    assert pipeline.transformed_rows == ROWS


def test_filters_management(pipeline):
    pipeline.add_filter(FilterConfig("b", "equals", "x"))
    pipeline.add_filter(FilterConfig("a", "gt", "1"))
    assert pipeline.transformed_rows == [{"a": 3, "b": "x"}]

    pipeline.update_filter(1, operator="lt", value="2")
    assert pipeline.filters[1] == FilterConfig("a", "lt", "2")
    assert pipeline.transformed_rows == [{"a": 1, "b": "x"}]

    pipeline.remove_filter(0)
    assert pipeline.filters == [FilterConfig("a", "lt", "2")]
    assert pipeline.transformed_rows == [{"a": 1, "b": "x"}]

    pipeline.clear_filters()
    assert pipeline.transformed_rows == ROWS


@pytest.mark.parametrize("index", [-1, 1, 5])
def test_filter_index_out_of_range(pipeline, index):
    pipeline.add_filter(FilterConfig("b", "equals", "x"))
    with pytest.raises(PipelineConfigError):
        pipeline.update_filter(index, value="y")
    with pytest.raises(PipelineConfigError):
        pipeline.remove_filter(index)
    assert pipeline.filters == [FilterConfig("b", "equals", "x")]


def test_unknown_filter_operator_fails_open(pipeline):
    pipeline.add_filter(FilterConfig("b", "regex", "^x$"))
    assert pipeline.transformed_rows == ROWS


@pytest.mark.parametrize("name, formula", [("", "a + 1"), ("f", ""), ("", "")])
def test_add_formula_rejects_empty(pipeline, name, formula):
    with pytest.raises(PipelineConfigError) as err:
        pipeline.add_formula(name, formula)
    assert str(err.value) == "Please enter both formula name and expression"
    assert pipeline.formulas == []
    assert pipeline.transformed_rows == ROWS


def test_add_formula_rejects_duplicate_name(pipeline):
    pipeline.add_formula("f", "a + 1")
    with pytest.raises(PipelineConfigError) as err:
        pipeline.add_formula("f", "a + 2")
    assert str(err.value) == "Formula name already exists"
    assert [row["f"] for row in pipeline.transformed_rows] == [2, 3, 4]


def test_pipeline_config_error_is_value_error():
    assert issubclass(PipelineConfigError, ValueError)


def test_formula_failure_isolation(pipeline):
    pipeline.add_formula("bad", "missing_column * 2")
    pipeline.add_formula("good", "a * 2")
    assert [row["bad"] for row in pipeline.transformed_rows] == [None, None, None]
    assert [row["good"] for row in pipeline.transformed_rows] == [2, 4, 6]


def test_remove_formula(pipeline):
    pipeline.add_formula("f", "ROW()")
    pipeline.remove_formula("f")
    assert pipeline.formulas == []
    assert pipeline.transformed_rows == ROWS


def test_columns_without_rows():
    pipeline = Pipeline()
    pipeline.load([], ["a", "b"])
    assert pipeline.columns == ["a", "b"]
    assert pipeline.transformed_rows == []


def test_config_roundtrip(pipeline):
    pipeline.add_filter(FilterConfig("a", "between", "1", "2"))
    pipeline.toggle_sort("a")
    pipeline.set_aggregation(AggregationConfig("a", "median"))
    pipeline.set_pivot(PivotConfig(rows=["a"], values=["_value"], aggregation="max"))
    pipeline.add_formula("n", "ROW()")

    config = pipeline.to_config()
    assert config == {
        "filters": [{"column": "a", "operator": "between", "value": "1", "value2": "2"}],
        "sort": [{"column": "a", "direction": "asc"}],
        "aggregation": {"column": "a", "operation": "median"},
        "pivot": {"rows": ["a"], "columns": [], "values": ["_value"], "aggregation": "max"},
        "formulas": [{"name": "n", "formula": "ROW()"}],
    }

    restored = Pipeline.from_config(config)
    restored.load(ROWS, ["a", "b"])
    assert restored.to_config() == config
    assert restored.transformed_rows == pipeline.transformed_rows


@pytest.mark.parametrize(
    "config",
    [
        {"sort": [{"column": "a", "direction": "sideways"}]},
        {"aggregation": {"column": "a", "operation": "std"}},
        {"pivot": {"rows": ["a"], "values": ["b"], "aggregation": "median"}},
        {"filters": [{"operator": "equals"}]},
        {"formulas": [{"name": "f", "formula": "1"}, {"name": "f", "formula": "2"}]},
        {"formulas": [{"name": "", "formula": "1"}]},
    ],
)
def test_invalid_config(pipeline, config):
    pipeline.add_formula("keep", "1")
    with pytest.raises(PipelineConfigError):
        pipeline.configure(config)
    assert pipeline.formulas[0].name == "keep"


def test_describe(pipeline):
    assert pipeline.describe() == [
        "Applied filters: None",
        "Applied sorting: None",
        "Applied aggregation: None",
        "Applied pivot: None",
        "Applied formulas: None",
    ]
    pipeline.add_filter(FilterConfig("b", "equals", "x"))
    pipeline.toggle_sort("a")
    pipeline.add_formula("f", "a * 2")
    lines = pipeline.describe()
    assert lines[0] == 'Applied filters: b equals "x"'
    assert lines[1] == "Applied sorting: a asc"
    assert lines[4] == "Applied formulas: f = a * 2"


def test_deeply_nested_formula_does_not_break_pipeline(pipeline):
    pipeline.add_formula("deep", "(" * 200 + "a" + ")" * 200)
    assert [row["deep"] for row in pipeline.transformed_rows] == [None, None, None]

    pipeline.add_formula("double", "a * 2")
    assert [row["double"] for row in pipeline.transformed_rows] == [2, 4, 6]
    pipeline.remove_formula("deep")
    assert [list(row) for row in pipeline.transformed_rows] == [["a", "b", "double"]] * 3


def test_update_filter_with_numeric_value(pipeline):
    pipeline.add_filter(FilterConfig("a", "gt", 1))
    assert pipeline.transformed_rows == ROWS[1:]

    pipeline.update_filter(0, value=2)
    assert pipeline.filters == [FilterConfig("a", "gt", "2")]
    assert pipeline.transformed_rows == [{"a": 3, "b": "x"}]
