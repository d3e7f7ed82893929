"""
Unit tests for the entity registry.
"""
import unittest

from builders import entity, pk, scalar
from dto_auto_generator.domain.cache import ResolutionCache
from dto_auto_generator.domain.registry import EntityRegistry


class TestEntityRegistry(unittest.TestCase):

    def setUp(self):
        self.base = entity("BaseEntity", pk(), is_entity=False)
        self.user = entity("User", scalar("email"), base=self.base)
        self.post = entity("Post", pk(), scalar("title"))
        self.registry = EntityRegistry.build([self.base, self.user, self.post])

    def test_lookup(self):
        self.assertIs(self.registry.lookup("User"), self.user)
        self.assertIsNone(self.registry.lookup("Missing"))
        self.assertIsNone(self.registry.lookup(""))
        self.assertIsNone(self.registry.lookup(None))

    def test_names_keep_registration_order(self):
        self.assertEqual(self.registry.names(), ["BaseEntity", "User", "Post"])
        self.assertEqual(len(self.registry), 3)
        self.assertIn("Post", self.registry)

    def test_entities_excludes_undecorated_declarations(self):
        self.assertEqual(self.registry.entities(), [self.user, self.post])

    def test_first_registration_wins(self):
        """Duplicate names keep the first declaration and report the rest."""
        duplicate = entity("User", scalar("other"))

        with self.assertLogs("dto_auto_generator", level="WARNING") as logs:
            registry = EntityRegistry([self.user, duplicate])

        self.assertIs(registry.lookup("User"), self.user)
        self.assertEqual(registry.duplicates, [duplicate])
        self.assertIn("Duplicate declaration 'User'", logs.output[0])

    def test_same_object_twice_is_not_a_duplicate(self):
        registry = EntityRegistry([self.user, self.user])

        self.assertEqual(len(registry), 1)
        self.assertEqual(registry.duplicates, [])

    def test_mapping_is_read_only(self):
        with self.assertRaises(TypeError):
            self.registry.mapping["Ghost"] = self.post

    def test_discard_drops_declaration_entries(self):
        cache = ResolutionCache()
        registry = EntityRegistry([self.user], cache=cache)
        cache.scope(self.user, "inherited-properties")["value"] = ()

        registry.discard()

        self.assertFalse(cache.declarations.tracks(self.user))


if __name__ == '__main__':
    unittest.main()
