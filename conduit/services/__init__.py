# Services package.
#
# Each module exposes a class wrapping one component of the domain; every
# class is constructed with the request's AsyncSession, so the router layer
# controls the transaction boundary via the ``get_db`` dependency.
#
#   slug: slugify + uniqueness probe
#   user_service: identity lookup, registration, login, updates
#   follow_service: follow edges
#   favorite_service: favorite edges + denormalized counter
#   tag_service: tag vocabulary + article membership
#   profile_service: author sub-object, follow/unfollow by username
#   article_service: article projections, list/feed, CRUD, favorites
#   comment_service: comment projections, add/list/delete
