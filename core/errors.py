"""
异常定义

牌局内的违规操作 (无效出牌、非当前回合操作) 不是异常，只会被忽略并记录日志
"""


class BartokError(Exception):
    """引擎异常基类"""


class DefinitionError(BartokError):
    """牌组/布局/配置定义非法 (启动时致命)"""


class NotStartedError(BartokError):
    """发牌前执行回合操作"""


class EmptyDeckError(BartokError):
    """摸牌堆与弃牌堆同时为空 (违反牌数守恒)"""
