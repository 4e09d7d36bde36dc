from django.db import models
from django.utils import timezone


class SoftDeleteModel(models.Model):
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at'])


class Product(SoftDeleteModel):
    enabled = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Product {self.pk}"


class ProductTranslation(models.Model):
    product = models.ForeignKey(Product, related_name='translations', on_delete=models.CASCADE)
    language_code = models.CharField(max_length=10)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    description = models.TextField(blank=True, default='')

    class Meta:
        unique_together = [('product', 'language_code')]

    def __str__(self):
        return f"{self.name} ({self.language_code})"


class ProductVariant(SoftDeleteModel):
    product = models.ForeignKey(Product, related_name='variants', on_delete=models.CASCADE)
    sku = models.CharField(max_length=50)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.sku} (product={self.product_id})"


class ProductVariantTranslation(models.Model):
    variant = models.ForeignKey(ProductVariant, related_name='translations', on_delete=models.CASCADE)
    language_code = models.CharField(max_length=10)
    name = models.CharField(max_length=255)

    class Meta:
        unique_together = [('variant', 'language_code')]

    def __str__(self):
        return f"{self.name} ({self.language_code})"


class Collection(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Collection {self.pk}"


class CollectionTranslation(models.Model):
    collection = models.ForeignKey(Collection, related_name='translations', on_delete=models.CASCADE)
    language_code = models.CharField(max_length=10)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    description = models.TextField(blank=True, default='')

    class Meta:
        unique_together = [('collection', 'language_code')]

    def __str__(self):
        return f"{self.name} ({self.language_code})"
