from typing import List, Tuple

import cv2

from accessory_registry import AccessoryDescriptor


def draw_side_panel(
    frame, entries: List[AccessoryDescriptor], selected_idx: int, panel_width: int = 220
) -> List[Tuple[Tuple[int, int, int, int], int]]:
    height, width = frame.shape[:2]
    x0 = width - panel_width
    cv2.rectangle(frame, (x0, 0), (width, height), (30, 30, 30), -1)
    cv2.rectangle(frame, (x0, 0), (width, height), (80, 80, 80), 2)

    y = 30
    cv2.putText(frame, "Accessories", (x0 + 12, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2)
    y += 25

    clickable: List[Tuple[Tuple[int, int, int, int], int]] = []

    # Show a scrolling window of entries around the selected index.
    window_size = 12
    start = max(0, selected_idx - window_size // 2)
    end = min(len(entries), start + window_size)
    if end - start < window_size:
        start = max(0, end - window_size)

    last_category = None
    for idx in range(start, end):
        entry = entries[idx]
        if entry.category is not last_category:
            cv2.putText(
                frame, entry.category.value.title(), (x0 + 12, y),
                cv2.FONT_HERSHEY_SIMPLEX, 0.45, (150, 150, 150), 1,
            )
            y += 20
            last_category = entry.category
        color = (0, 255, 180) if idx == selected_idx else (220, 220, 220)
        prefix = ">" if idx == selected_idx else " "
        card_top = y - 16
        card_bottom = y + 8
        card_left = x0 + 8
        card_right = width - 8
        if idx == selected_idx:
            cv2.rectangle(frame, (card_left, card_top), (card_right, card_bottom), (60, 60, 60), -1)
        cv2.putText(frame, f"{prefix} {entry.name}", (x0 + 16, y), cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1)
        clickable.append(((card_left, card_top, card_right, card_bottom), idx))
        y += 22
    return clickable


def draw_status_panel(frame, lines, origin=(10, 24)) -> None:
    x, y = origin
    for line in lines:
        cv2.putText(frame, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 0), 3)
        cv2.putText(frame, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1)
        y += 22
