import django_filters

from modules.products.models import Product


class ProductFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    min_price = django_filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="price", lookup_expr="lte")
    in_stock = django_filters.BooleanFilter(method="filter_in_stock")
    is_active = django_filters.BooleanFilter(field_name="is_active")
    category = django_filters.UUIDFilter(field_name="category_id")
    stock_below = django_filters.NumberFilter(field_name="stock_quantity", lookup_expr="lt")

    class Meta:
        model = Product
        fields = [
            "name",
            "min_price",
            "max_price",
            "in_stock",
            "is_active",
            "category",
            "stock_below",
        ]

    def filter_in_stock(self, queryset, name, value):
        if value:
            return queryset.filter(stock_quantity__gt=0)
        return queryset.filter(stock_quantity=0)
