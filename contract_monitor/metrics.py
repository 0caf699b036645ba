from prometheus_client import Gauge, Counter

# Define metrics
health_gauge = Gauge('exporter_health', 'Health status of the exporter (1 = healthy, 0 = unhealthy)')
last_successful_scrape = Gauge('exporter_last_successful_scrape_timestamp', 'Timestamp of the last successful scrape')
rpc_health = Gauge('exporter_rpc_health', 'RPC endpoint health status (1 = healthy, 0 = unhealthy)', ['chain'])

contract_balance = Gauge(
    'monitor_contract_balance_ether',
    'Native token balance of a monitored contract, in display units',
    ['chain', 'name']
)
contract_balance_low = Gauge(
    'monitor_contract_balance_low',
    'Whether a monitored contract balance is at or below its minimum (1 = low, 0 = ok)',
    ['chain', 'name']
)
contract_failures_total = Counter(
    'monitor_contract_failures',
    'Total number of failed contract balance polls',
    ['chain']
)
