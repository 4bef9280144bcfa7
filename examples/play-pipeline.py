from tabshaper import Pipeline
from tabshaper.compute import CSVDataSource, FilterConfig, PivotConfig
from tabshaper.utils.tabulate import tabulate, tabulate_profiles

pipeline = Pipeline()
pipeline.load_datasource(CSVDataSource("data/sales.csv"))
print(tabulate_profiles(pipeline.profiles))
print()

pipeline.add_filter(FilterConfig("Price", "between", "20", "80"))
pipeline.toggle_sort("Price")
pipeline.toggle_sort("Price")
pipeline.add_formula("Total", "Quantity * Price")
print(tabulate(pipeline.transformed_rows, pipeline.columns, max_rows=10))
print()

pipeline.remove_formula("Total")
pipeline.set_pivot(PivotConfig(rows=["Product"], values=["Quantity", "Price"], aggregation="avg"))
pipeline.add_formula("Position", "ROW()")
print(tabulate(pipeline.transformed_rows, pipeline.columns))
print()

for line in pipeline.describe():
    print(line)
