# household_menu/services/solar_term.py

from datetime import date as Date
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..schemas.diet import DietarySuggestion


class SolarTerm(str, Enum):
    """二十四节气"""
    LICHUN = "立春"
    YUSHUI = "雨水"
    JINGZHE = "惊蛰"
    CHUNFEN = "春分"
    QINGMING = "清明"
    GUYU = "谷雨"
    LIXIA = "立夏"
    XIAOMAN = "小满"
    MANGZHONG = "芒种"
    XIAZHI = "夏至"
    XIAOSHU = "小暑"
    DASHU = "大暑"
    LIQIU = "立秋"
    CHUSHU = "处暑"
    BAILU = "白露"
    QIUFEN = "秋分"
    HANLU = "寒露"
    SHUANGJIANG = "霜降"
    LIDONG = "立冬"
    XIAOXUE = "小雪"
    DAXUE = "大雪"
    DONGZHI = "冬至"
    XIAOHAN = "小寒"
    DAHAN = "大寒"

    @classmethod
    def current(cls, date: Optional[Date] = None) -> "SolarTerm":
        return resolve(date or Date.today())

    @property
    def anchor(self) -> Tuple[int, int]:
        """常年近似日期 (月, 日)"""
        return _ANCHORS[self]

    @property
    def estimated_temperature(self) -> float:
        return _ESTIMATED_TEMPERATURES[self]

    @property
    def dietary_suggestion(self) -> DietarySuggestion:
        return _SUGGESTIONS[self]


_ANCHORS: Dict[SolarTerm, Tuple[int, int]] = {
    SolarTerm.XIAOHAN: (1, 6),
    SolarTerm.DAHAN: (1, 20),
    SolarTerm.LICHUN: (2, 4),
    SolarTerm.YUSHUI: (2, 19),
    SolarTerm.JINGZHE: (3, 6),
    SolarTerm.CHUNFEN: (3, 21),
    SolarTerm.QINGMING: (4, 5),
    SolarTerm.GUYU: (4, 20),
    SolarTerm.LIXIA: (5, 6),
    SolarTerm.XIAOMAN: (5, 21),
    SolarTerm.MANGZHONG: (6, 6),
    SolarTerm.XIAZHI: (6, 21),
    SolarTerm.XIAOSHU: (7, 7),
    SolarTerm.DASHU: (7, 23),
    SolarTerm.LIQIU: (8, 7),
    SolarTerm.CHUSHU: (8, 23),
    SolarTerm.BAILU: (9, 8),
    SolarTerm.QIUFEN: (9, 23),
    SolarTerm.HANLU: (10, 8),
    SolarTerm.SHUANGJIANG: (10, 23),
    SolarTerm.LIDONG: (11, 7),
    SolarTerm.XIAOXUE: (11, 22),
    SolarTerm.DAXUE: (12, 7),
    SolarTerm.DONGZHI: (12, 22),
}

# 按日历顺序排列，resolve 从后往前扫描
_ANCHOR_TABLE: List[Tuple[int, SolarTerm]] = sorted(
    (month * 100 + day, term) for term, (month, day) in _ANCHORS.items()
)

_ESTIMATED_TEMPERATURES: Dict[SolarTerm, float] = {
    SolarTerm.XIAOHAN: -2,
    SolarTerm.DAHAN: -2,
    SolarTerm.LICHUN: 3,
    SolarTerm.YUSHUI: 6,
    SolarTerm.JINGZHE: 10,
    SolarTerm.CHUNFEN: 13,
    SolarTerm.QINGMING: 16,
    SolarTerm.GUYU: 19,
    SolarTerm.LIXIA: 23,
    SolarTerm.XIAOMAN: 26,
    SolarTerm.MANGZHONG: 28,
    SolarTerm.XIAZHI: 30,
    SolarTerm.XIAOSHU: 32,
    SolarTerm.DASHU: 34,
    SolarTerm.LIQIU: 32,
    SolarTerm.CHUSHU: 29,
    SolarTerm.BAILU: 25,
    SolarTerm.QIUFEN: 21,
    SolarTerm.HANLU: 16,
    SolarTerm.SHUANGJIANG: 11,
    SolarTerm.LIDONG: 7,
    SolarTerm.XIAOXUE: 3,
    SolarTerm.DAXUE: 0,
    SolarTerm.DONGZHI: -1,
}

_EARLY_SPRING = DietarySuggestion(
    prefer_hot=True, prefer_soup=True, prefer_light=True, prefer_cold=False,
    description="春季养肝，宜清淡温补，多食新鲜蔬菜",
)
_MID_SPRING = DietarySuggestion(
    prefer_hot=True, prefer_soup=True, prefer_light=True, prefer_cold=False,
    description="仲春时节，宜平补养肝，饮食清淡",
)
_EARLY_SUMMER = DietarySuggestion(
    prefer_hot=False, prefer_soup=True, prefer_light=True, prefer_cold=True,
    description="初夏养心，宜清淡消暑，多食瓜果",
)
_PEAK_SUMMER = DietarySuggestion(
    prefer_hot=False, prefer_soup=True, prefer_light=True, prefer_cold=True,
    description="盛夏消暑，宜清凉解热，多饮汤水",
)
_EARLY_AUTUMN = DietarySuggestion(
    prefer_hot=True, prefer_soup=True, prefer_light=True, prefer_cold=False,
    description="秋季润燥，宜滋阴润肺，多食汤羹",
)
_MID_AUTUMN = DietarySuggestion(
    prefer_hot=True, prefer_soup=True, prefer_light=False, prefer_cold=False,
    description="仲秋养肺，宜温润滋补，适当进补",
)
_LATE_AUTUMN = DietarySuggestion(
    prefer_hot=True, prefer_soup=True, prefer_light=False, prefer_cold=False,
    description="深秋进补，宜温热滋养，增强体质",
)
_EARLY_WINTER = DietarySuggestion(
    prefer_hot=True, prefer_soup=True, prefer_light=False, prefer_cold=False,
    description="冬季进补，宜温热滋补，多食炖煮",
)
_DEEP_WINTER = DietarySuggestion(
    prefer_hot=True, prefer_soup=True, prefer_light=False, prefer_cold=False,
    description="严冬御寒，宜大补温阳，多食肉类炖汤",
)

_SUGGESTIONS: Dict[SolarTerm, DietarySuggestion] = {
    SolarTerm.LICHUN: _EARLY_SPRING,
    SolarTerm.YUSHUI: _EARLY_SPRING,
    SolarTerm.JINGZHE: _EARLY_SPRING,
    SolarTerm.CHUNFEN: _MID_SPRING,
    SolarTerm.QINGMING: _MID_SPRING,
    SolarTerm.GUYU: _MID_SPRING,
    SolarTerm.LIXIA: _EARLY_SUMMER,
    SolarTerm.XIAOMAN: _EARLY_SUMMER,
    SolarTerm.MANGZHONG: _EARLY_SUMMER,
    SolarTerm.XIAZHI: _PEAK_SUMMER,
    SolarTerm.XIAOSHU: _PEAK_SUMMER,
    SolarTerm.DASHU: _PEAK_SUMMER,
    SolarTerm.LIQIU: _EARLY_AUTUMN,
    SolarTerm.CHUSHU: _EARLY_AUTUMN,
    SolarTerm.BAILU: _MID_AUTUMN,
    SolarTerm.QIUFEN: _MID_AUTUMN,
    SolarTerm.HANLU: _LATE_AUTUMN,
    SolarTerm.SHUANGJIANG: _LATE_AUTUMN,
    SolarTerm.LIDONG: _EARLY_WINTER,
    SolarTerm.XIAOXUE: _EARLY_WINTER,
    SolarTerm.DAXUE: _EARLY_WINTER,
    SolarTerm.DONGZHI: _DEEP_WINTER,
    SolarTerm.XIAOHAN: _DEEP_WINTER,
    SolarTerm.DAHAN: _DEEP_WINTER,
}


def resolve(date: Date) -> SolarTerm:
    """根据公历日期返回所处节气。"""
    day_of_year = date.month * 100 + date.day

    matched = SolarTerm.XIAOHAN
    for anchor, term in reversed(_ANCHOR_TABLE):
        if day_of_year >= anchor:
            matched = term
            break

    # 1月6日小寒之前仍属上一年的冬至
    if date.month == 1 and date.day < 6:
        matched = SolarTerm.DONGZHI

    return matched
