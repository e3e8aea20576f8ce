from django.db import models

# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a quarry
# -----------------------------------------
# Define subclass of Django's QuerySet
class TenantQuerySet(models.QuerySet):
    def for_quarry(self, quarry):         # Add queryset helper
        return self.filter(quarry=quarry)  # Apply filter

    def active(self, quarry):
        return self.filter(
                            quarry=quarry,   # enforce tenant scoping
                            is_active=True   # only fetch active records
                        )
    # Enables query:
    # Sale.objects.active(quarry)


# Attach TenantQuerySet to .objects
class TenantManager(models.Manager):

    def get_queryset(self):  # ensure every model gets TenantQuerySet(so .for_quarry() is always available)
        return TenantQuerySet(self.model, using=self._db)

    def for_quarry(self, quarry):  # can call for_quarry() directly on objects
        return self.get_queryset().for_quarry(quarry)

    def active(self, quarry):
        return self.get_queryset().active(quarry)


# Journal lines are scoped through their parent entry
class JournalLineQuerySet(models.QuerySet):
    def for_quarry(self, quarry):
        return self.filter(entry__quarry=quarry)

    def posted(self):
        # only lines that count towards balances
        return self.filter(entry__is_posted=True, entry__is_active=True)


JournalLineManager = models.Manager.from_queryset(JournalLineQuerySet)
