# SPDX-License-Identifier: Apache-2.0

"""
Fixed catalogs: violation codes, bonus criteria and the seed unit list.
"""

import unicodedata
import re
from typing import Dict, List, Optional

from models.entities import ViolationCode, BonusCriteria, Unit
from models.enums import Role, ScoringType, ViolationGroup
from domain.scoring import area_tier


def _ratio(code: str, group: ViolationGroup, name: str, legal_basis: str) -> ViolationCode:
    return ViolationCode(
        code=code, group=group, name=name, legal_basis=legal_basis,
        scoring_type=ScoringType.RATIO
    )


def _direct(code: str, group: ViolationGroup, name: str, legal_basis: str, factor: float) -> ViolationCode:
    return ViolationCode(
        code=code, group=group, name=name, legal_basis=legal_basis,
        scoring_type=ScoringType.DIRECT, direct_deduction_factor=factor
    )


VIOLATION_CODES: List[ViolationCode] = [
    # Traffic order and safety
    _ratio('VP_ATGT_01', ViolationGroup.TTATGT, 'Đỗ/để xe ô tô ở vỉa hè trái quy định', 'Điểm e Khoản 3 Điều 6'),
    _ratio('VP_ATGT_02', ViolationGroup.TTATGT, 'Đỗ/để xe máy chuyên dùng ở vỉa hè trái phép', 'Điểm đ Khoản 2 Điều 8'),
    _ratio('VP_ATGT_03', ViolationGroup.TTATGT, 'Để xe đạp/xe thô sơ ở vỉa hè gây cản trở', 'Điểm k Khoản 1 Điều 9'),
    _ratio('VP_ATGT_04', ViolationGroup.TTATGT, 'Dừng xe nơi có biển Cấm dừng/đỗ', 'Điểm đ Khoản 2 Điều 6'),
    _ratio('VP_ATGT_05', ViolationGroup.TTATGT, 'Đỗ xe nơi có biển Cấm đỗ', 'Điểm e Khoản 3 Điều 6'),

    # Urban order
    _direct('VP_TTDT_01', ViolationGroup.TTDT, 'Bán hàng rong/nhỏ lẻ phố cấm', 'Điểm e Khoản 2 Điều 12', 0.1),
    _ratio('VP_TTDT_02', ViolationGroup.TTDT, 'Phơi thóc/lúa/rơm rạ trên đường bộ', 'Điểm g Khoản 2 Điều 12'),
    _ratio('VP_TTDT_03', ViolationGroup.TTDT, 'Tập trung đông người/nằm ngồi cản trở', 'Điểm a Khoản 2 Điều 12'),
    _ratio('VP_TTDT_04', ViolationGroup.TTDT, 'Đá bóng/cầu lông/patin dưới lòng đường', 'Điểm b Khoản 2 Điều 12'),
    _ratio('VP_TTDT_05', ViolationGroup.TTDT, 'Chiếm dụng dải phân cách', 'Điểm d Khoản 6 Điều 12'),
    _ratio('VP_TTDT_06', ViolationGroup.TTDT, 'Sử dụng trái phép lòng/hè để kinh doanh', 'Khoản 7 Điều 12'),
    _ratio('VP_TTDT_07', ViolationGroup.TTDT, 'Bày bán vật tư/sản xuất trên hè phố', 'Khoản 9 Điều 12'),
    _direct('VP_TTDT_08A', ViolationGroup.TTDT, 'Trông giữ xe không phép', 'Khoản 10 Điều 12', 5),
    _direct('VP_TTDT_08B', ViolationGroup.TTDT, 'Trông giữ xe sai phép', 'Khoản 10 Điều 12', 2),

    # Environmental sanitation
    _ratio('VP_VSMT_01', ViolationGroup.VSMT, 'Vứt rác không đúng nơi (công cộng)', 'Điểm c Khoản 1 Điều 25 NĐ 45'),
    _ratio('VP_VSMT_02', ViolationGroup.VSMT, 'Vứt rác vỉa hè/hệ thống thoát nước', 'Điểm d Khoản 1 Điều 25 NĐ 45'),
]

VIOLATION_CODES_BY_CODE: Dict[str, ViolationCode] = {vc.code: vc for vc in VIOLATION_CODES}


BONUS_CRITERIA: List[BonusCriteria] = [
    BonusCriteria(id='B1', content='Không phát sinh tái vi phạm trong kỳ đánh giá', max_points=3, is_fixed=True),
    # +2 per cleared hotspot
    BonusCriteria(id='B2', content='Xóa bỏ dứt điểm điểm nóng tồn tại kéo dài theo ĐTCB', max_points=2, is_fixed=False),
    BonusCriteria(id='B3', content='Duy trì ổn định ≥ 30 ngày tại khu vực phức tạp', max_points=2, is_fixed=True),
    BonusCriteria(id='B4', content='Triển khai đầy đủ các văn bản chỉ đạo của UBND TP, Công an TP', max_points=2, is_fixed=False),
    BonusCriteria(id='B5', content='Chủ động tham mưu, phối hợp với UBND cấp xã, đoàn thể', max_points=2, is_fixed=False),
    BonusCriteria(id='B6', content='Xây dựng kế hoạch, tuyên truyền, sáng kiến, cách làm hay', max_points=2, is_fixed=False),
]

BONUS_CRITERIA_BY_ID: Dict[str, BonusCriteria] = {bc.id: bc for bc in BONUS_CRITERIA}


WARD_NAMES: List[str] = [
    "Hoàn Kiếm", "Cửa Nam", "Ba Đình", "Ngọc Hà", "Giảng Võ", "Hai Bà Trưng", "Vĩnh Tuy", "Bạch Mai", "Đống Đa", "Kim Liên",
    "Văn Miếu - Quốc Tử Giám", "Láng", "Ô Chợ Dừa", "Hồng Hà", "Lĩnh Nam", "Hoàng Mai", "Vĩnh Hưng", "Tương Mai", "Định Công",
    "Hoàng Liệt", "Yên Sở", "Thanh Xuân", "Khương Đình", "Phương Liệt", "Cầu Giấy", "Nghĩa Đô", "Yên Hòa", "Tây Hồ", "Phú Thượng",
    "Tây Tựu", "Xuân Đỉnh", "Đông Ngạc", "Thượng Cát", "Phú Diễn", "Từ Liêm", "Tây Mỗ", "Đại Mỗ", "Xuân Phương", "Long Biên",
    "Bồ Đề", "Việt Hưng", "Phúc Lợi", "Hà Đông", "Dương Nội", "Yên Nghĩa", "Phú Lương", "Kiến Hưng", "Thanh Liệt", "Chương Mỹ",
    "Tùng Thiện", "Sơn Tây", "Thanh Trì", "Đại Thanh", "Ngọc Hồi", "Nam Phủ", "Thường Tín", "Thượng Phúc", "Chương Dương", "Hồng Vân",
    "Phương Dực", "Phú Xuyên", "Chuyên Mỹ", "Đại Xuyên", "Thanh Oai", "Bình Minh", "Tam Hưng", "Dân Hòa", "Ứng Thiên", "Vân Đình",
    "Hoà Xá", "Ứng Hoà", "Phúc Sơn", "Hồng Sơn", "Mỹ Đức", "Hương Sơn", "Phú Nghĩa", "Xuân Mai", "Trần Phú", "Hoà Phú", "Quảng Bị",
    "Quảng Oai", "Vật Lại", "Cổ Đô", "Bất Bạt", "Suối Hai", "Ba Vì", "Yên Bài", "Minh Châu", "Đoài Phương", "Phúc Thọ", "Phúc Lộc",
    "Hát Môn", "Thạch Thất", "Hạ Bằng", "Tây Phương", "Hòa Lạc", "Yên Xuân", "Quốc Oai", "Kiều Phú", "Phú Cát", "Hưng Đạo", "Hoài Đức",
    "Dương Hòa", "Sơn Đồng", "An Khánh", "Đan Phượng", "Ô Diên", "Liên Minh", "Phù Đổng", "Thuận An", "Gia Lâm", "Bát Tràng", "Đông Anh",
    "Thư Lâm", "Phúc Thịnh", "Thiên Lộc", "Vĩnh Thanh", "Mê Linh", "Yên Lãng", "Tiên Thắng", "Quang Minh", "Sóc Sơn", "Nội Bài",
    "Kim Anh", "Đa Phúc", "Trung Giã",
]


def slugify(name: str) -> str:
    """
    Fold a Vietnamese name to a lowercase ASCII slug.

    Diacritics are stripped, đ becomes d and anything outside [a-z0-9]
    is dropped, so "Ô Chợ Dừa" becomes "ochodua".
    """
    decomposed = unicodedata.normalize('NFD', name.lower())
    stripped = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = stripped.replace('đ', 'd').replace('Đ', 'd')
    return re.sub(r'[^a-z0-9]', '', stripped)


def seed_initial_points(index: int) -> int:
    """Initial violation points of the seeded ward at ``index``."""
    bucket = index % 5
    if bucket == 0:
        return 1300
    if bucket == 1:
        return 500
    if bucket == 2:
        return 200
    return 1000


def build_seed_units() -> List[Unit]:
    """Admin, reviewer and one ward unit per ward name."""
    units = [
        Unit(
            id='u_admin',
            email='admin@qlhc.hanoi.vn',
            role=Role.ADMIN,
            unit_name='Phòng QLHC',
            phone_number='0988xxxxxx',
            area_coefficient=1,
            base_score=1200
        ),
        Unit(
            id='u_reviewer',
            email='canbo1@qlhc.hanoi.vn',
            role=Role.REVIEWER,
            unit_name='Tổ công tác QLHC',
            phone_number='0977xxxxxx',
            area_coefficient=1,
            base_score=1200
        ),
    ]

    for index, name in enumerate(WARD_NAMES):
        points = seed_initial_points(index)
        tier = area_tier(points)
        units.append(Unit(
            id=f'u_{index + 1}',
            email=f'p.{slugify(name)}@pol.vn',
            role=Role.WARD,
            unit_name=name,
            phone_number='09xxxxxxxx',
            area_coefficient=tier.coefficient,
            base_score=tier.base_score,
            total_violation_points=points
        ))

    return units


def get_violation_code(code: str) -> Optional[ViolationCode]:
    return VIOLATION_CODES_BY_CODE.get(code)


def get_bonus_criteria(criteria_id: str) -> Optional[BonusCriteria]:
    return BONUS_CRITERIA_BY_ID.get(criteria_id)
