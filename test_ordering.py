from types import SimpleNamespace

from src.services.ordering import array_move, clamp_index, insert_at, renumber


def make(*orders):
    return [SimpleNamespace(id=i + 1, order=order) for i, order in enumerate(orders)]


class TestClampIndex:
    """Тесты для clamp_index"""

    def test_inside_range(self):
        """Индекс внутри диапазона не меняется"""
        assert clamp_index(2, 5) == 2

    def test_negative_index(self):
        """Отрицательный индекс прижимается к нулю"""
        assert clamp_index(-3, 5) == 0

    def test_past_the_end(self):
        """Индекс за концом прижимается к длине"""
        assert clamp_index(10, 3) == 3


class TestArrayMove:
    """Тесты для array_move"""

    def test_move_forward(self):
        """Перемещение элемента вперед"""
        assert array_move(["a", "b", "c", "d"], 0, 2) == ["b", "c", "a", "d"]

    def test_move_backward(self):
        """Перемещение элемента назад"""
        assert array_move(["a", "b", "c", "d"], 3, 1) == ["a", "d", "b", "c"]

    def test_move_and_back_restores_sequence(self):
        """Обратное перемещение возвращает исходный порядок"""
        original = ["a", "b", "c", "d"]
        moved = array_move(original, 1, 3)
        assert array_move(moved, 3, 1) == original

    def test_source_not_mutated(self):
        """Исходная последовательность не изменяется"""
        original = ["a", "b", "c"]
        array_move(original, 0, 2)
        assert original == ["a", "b", "c"]

    def test_index_clamped(self):
        """Слишком большой индекс переносит элемент в конец"""
        assert array_move(["a", "b", "c"], 0, 99) == ["b", "c", "a"]

    def test_empty_sequence(self):
        """Пустая последовательность остается пустой"""
        assert array_move([], 0, 1) == []


class TestInsertAt:
    """Тесты для insert_at"""

    def test_insert_into_empty(self):
        """Вставка в пустой список дает позицию 0"""
        assert insert_at([], "x", 5) == ["x"]

    def test_insert_in_middle(self):
        """Вставка в середину"""
        assert insert_at(["a", "b"], "x", 1) == ["a", "x", "b"]


class TestRenumber:
    """Тесты для renumber"""

    def test_dense_after_renumber(self):
        """После перенумерации порядок плотный 0..n-1"""
        elements = make(3, 7, 10)
        renumber(elements)
        assert [e.order for e in elements] == [0, 1, 2]

    def test_returns_only_changed(self):
        """Возвращаются только элементы с измененным порядком"""
        elements = make(0, 5, 2)
        changed = renumber(elements)
        assert [e.id for e in changed] == [2]

    def test_already_dense(self):
        """Плотный порядок ничего не меняет"""
        assert renumber(make(0, 1, 2)) == []
