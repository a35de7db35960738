import unittest

from celulas.naming import normalize_cell_name, slugify


class NamingTests(unittest.TestCase):
    def test_equivalent_cell_names_share_a_key(self):
        key = normalize_cell_name("Célula 01")
        self.assertEqual(key, "celula 1")
        self.assertEqual(normalize_cell_name("celula 1"), key)
        self.assertEqual(normalize_cell_name("  CÉLULA   1 "), key)

    def test_different_numbers_do_not_collide(self):
        self.assertNotEqual(
            normalize_cell_name("Célula 10"), normalize_cell_name("Célula 1")
        )

    def test_slugify(self):
        self.assertEqual(slugify("João da Silva"), "joao-da-silva")
        self.assertEqual(slugify("  !!  "), "usuario")


if __name__ == "__main__":
    unittest.main()
