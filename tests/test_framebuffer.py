import pytest

from gramslator.framebuffer import Framebuffer, Rect, Rgb666


class RecordingDisplay:
    def __init__(self):
        self.calls = []

    def fill_contiguous(self, area, colors):
        self.calls.append((area, list(colors)))


def test_rgb666_rejects_out_of_range():
    with pytest.raises(ValueError):
        Rgb666(64, 0, 0)
    with pytest.raises(ValueError):
        Rgb666(0, -1, 0)


def test_rgb666_named_colors():
    assert Rgb666.BLACK == Rgb666(0, 0, 0)
    assert Rgb666.WHITE == Rgb666(63, 63, 63)


def test_rect_negative_size_rejected():
    with pytest.raises(ValueError):
        Rect(0, 0, -1, 2)


def test_rect_intersection_and_union_invariants():
    a = Rect(0, 0, 10, 10)
    b = Rect(5, 5, 10, 10)
    inter = a.intersection(b)
    union = a.union(b)
    assert inter == b.intersection(a)
    assert inter.contains(5, 5) and inter.contains(9, 9)
    assert not inter.contains(10, 10)
    assert union.contains(0, 0) and union.contains(14, 14)
    assert union == b.union(a)


def test_rect_disjoint_intersection_is_empty():
    assert Rect(0, 0, 2, 2).intersection(Rect(5, 5, 2, 2)).is_empty()
    assert Rect(0, 0, 2, 2).intersection(Rect(2, 0, 2, 2)).is_empty()


def test_new_framebuffer_is_black_and_clean():
    fb = Framebuffer(4, 3)
    assert fb.size == (4, 3)
    assert len(fb.data) == 4 * 3 * 3
    assert fb.is_dirty() is False
    assert fb.dirty_rect() is None
    assert all(fb.pixel(x, y) == Rgb666.BLACK for x in range(4) for y in range(3))


def test_pixel_out_of_bounds_raises():
    fb = Framebuffer(4, 3)
    with pytest.raises(IndexError):
        fb.pixel(4, 0)


def test_fill_solid_sets_pixels_and_dirty():
    fb = Framebuffer(10, 10)
    area = Rect(2, 3, 4, 2)
    fb.fill_solid(area, Rgb666.RED)
    assert fb.dirty_rect() == area
    for y in range(10):
        for x in range(10):
            expected = Rgb666.RED if area.contains(x, y) else Rgb666.BLACK
            assert fb.pixel(x, y) == expected


def test_fill_solid_clamped_to_bounds():
    fb = Framebuffer(5, 5)
    fb.fill_solid(Rect(-3, -3, 100, 100), Rgb666.WHITE)
    assert fb.dirty_rect() == fb.bounds
    assert fb.pixel(4, 4) == Rgb666.WHITE


def test_fill_solid_outside_does_nothing():
    fb = Framebuffer(5, 5)
    fb.fill_solid(Rect(10, 10, 3, 3), Rgb666.WHITE)
    assert fb.is_dirty() is False


def test_clip_restricts_drawing():
    fb = Framebuffer(10, 10)
    clip = Rect(0, 5, 10, 5)
    fb.set_clip(clip)
    fb.clear(Rgb666.GREEN)
    assert fb.dirty_rect() == clip
    assert fb.pixel(0, 4) == Rgb666.BLACK
    assert fb.pixel(0, 5) == Rgb666.GREEN
    fb.set_clip(None)
    fb.fill_solid(Rect(0, 0, 1, 1), Rgb666.BLUE)
    assert fb.pixel(0, 0) == Rgb666.BLUE


def test_dirty_region_is_union_of_changes():
    fb = Framebuffer(20, 20)
    a = Rect(1, 1, 2, 2)
    b = Rect(10, 12, 3, 1)
    fb.fill_solid(a, Rgb666.RED)
    fb.fill_solid(b, Rgb666.RED)
    assert fb.dirty_rect() == a.union(b)


def test_draw_pixels_skips_invisible_and_tracks_bbox():
    fb = Framebuffer(8, 8)
    fb.draw_pixels([((1, 2), Rgb666.RED), ((3, 4), Rgb666.BLUE), ((-1, 0), Rgb666.WHITE)])
    assert fb.pixel(1, 2) == Rgb666.RED
    assert fb.pixel(3, 4) == Rgb666.BLUE
    dirty = fb.dirty_rect()
    assert dirty.contains(1, 2) and dirty.contains(3, 4)
    assert not dirty.contains(0, 0)


def test_draw_pixels_all_invisible_stays_clean():
    fb = Framebuffer(8, 8)
    fb.draw_pixels([((100, 100), Rgb666.RED)])
    assert fb.is_dirty() is False


def test_fill_contiguous_row_major():
    fb = Framebuffer(6, 6)
    area = Rect(1, 1, 2, 2)
    colors = [Rgb666.RED, Rgb666.GREEN, Rgb666.BLUE, Rgb666.WHITE]
    fb.fill_contiguous(area, colors)
    assert [fb.pixel(1, 1), fb.pixel(2, 1), fb.pixel(1, 2), fb.pixel(2, 2)] == colors
    assert fb.dirty_rect() == area


def test_fill_contiguous_zero_width_is_noop():
    fb = Framebuffer(6, 6)
    fb.fill_contiguous(Rect(1, 1, 0, 3), [Rgb666.RED])
    assert fb.is_dirty() is False


def test_flush_sends_dirty_region_and_resets():
    fb = Framebuffer(6, 6)
    area = Rect(2, 2, 3, 2)
    fb.fill_solid(area, Rgb666.RED)
    display = RecordingDisplay()
    pushed = fb.flush(display)
    assert pushed == area.width * area.height
    assert display.calls[0][0] == area
    assert display.calls[0][1] == [Rgb666.RED] * pushed
    assert fb.is_dirty() is False
    assert fb.flush(display) == 0
    assert len(display.calls) == 1


def test_flush_round_trip_into_second_framebuffer():
    src = Framebuffer(5, 5)
    src.fill_contiguous(Rect(0, 0, 2, 1), [Rgb666.RED, Rgb666.BLUE])
    dst = Framebuffer(5, 5)
    src.flush(dst)
    assert bytes(dst.data) == bytes(src.data)


def test_take_dirty_returns_and_clears():
    fb = Framebuffer(4, 4)
    area = Rect(0, 0, 1, 1)
    fb.fill_solid(area, Rgb666.WHITE)
    assert fb.take_dirty() == area
    assert fb.take_dirty() is None