"""
Checks for IP address analysis.

Each module in this package wraps one data source (search API, mirrored
dataset, DNS) in a Check returning a uniform Result.
"""
