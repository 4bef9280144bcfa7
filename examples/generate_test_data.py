import os
import csv
import json
import random
from datetime import datetime, timedelta

import openpyxl

if not os.path.exists("data"):
    os.mkdir("data")

products = ["Dress", "Car", "Videogame", "Laptop", "TV"]
regions = ["North", "South", "East", "West"]
start_date = datetime(2023, 1, 1)
end_date = datetime(2024, 12, 31)

sales = []
for i in range(1000):
    product = random.choice(products)
    region = random.choice(regions)
    quantity = random.randint(1, 10)
    price = round(random.uniform(10, 100), 2)
    random_date = start_date + timedelta(days=random.randint(0, (end_date - start_date).days))
    # Leave some holes, the profiler reports them as missing values.
    if random.random() < 0.02:
        price = ""
    sales.append([product, region, quantity, price, random_date.strftime("%Y-%m-%d"), random.choice(["yes", "no"])])

if not os.path.exists("data/sales.csv"):
    with open("data/sales.csv", "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Product", "Region", "Quantity", "Price", "Date", "Returned"])
        writer.writerows(sales)

if not os.path.exists("data/sales.json"):
    columns = ["Product", "Region", "Quantity", "Price", "Date", "Returned"]
    with open("data/sales.json", "w") as f:
        json.dump([dict(zip(columns, sale)) for sale in sales], f, indent=1)

if not os.path.exists("data/sales.xlsx"):
    workbook = openpyxl.Workbook()
    workbook.active.title = "Sales"
    workbook.active.append(["Product", "Region", "Quantity", "Price", "Date", "Returned"])
    for sale in sales:
        workbook.active.append([None if v == "" else v for v in sale])
    workbook.save("data/sales.xlsx")

if not os.path.exists("data/pipeline.json"):
    with open("data/pipeline.json", "w") as f:
        json.dump(
            {
                "filters": [{"column": "Returned", "operator": "equals", "value": "no"}],
                "sort": [],
                "aggregation": None,
                "pivot": {"rows": ["Region", "Product"], "columns": [], "values": ["Quantity", "Price"], "aggregation": "sum"},
                "formulas": [{"name": "Running", "formula": "SUM(Quantity_sum)"}],
            },
            f,
            indent=2,
        )
