"""
Token Gateway 代币详情 BFF 服务
为代币详情页提供价格、流动性、图表符号与代币列表的 HTTP 接口

架构分层：
  数据获取层 (Acquisition)   → CoinGecko / Yahoo Finance / Uniswap 子图 / DexScreener / 代币列表
  缓存层     (Cache)         → 进程内 TTL 缓存 → Redis（可选）
  处理层     (Processing)    → 上游数据规范化、流动性池聚合
  展示层     (Presentation)  → 参数解析、图表符号推导、展示字段优先级
"""

__version__ = "1.0.0"
