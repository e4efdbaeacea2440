"""
数据流分层架构
  Layer 1 – Acquisition   : 数据获取（CoinGecko / Yahoo Finance / Uniswap / DexScreener / 代币列表）
  Layer 2 – Cache         : 两级缓存（进程内 TTL → Redis）
  Layer 3 – Processing    : 上游数据规范化与流动性聚合
  Layer 4 – Presentation  : 参数解析、图表符号推导、展示字段优先级
"""
